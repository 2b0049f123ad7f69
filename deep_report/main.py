"""Command-line entry point for the report generator.

Usage:
    deep-report --topic "State of WebAssembly runtimes" --session-id wasm-1
    deep-report --topic "State of WebAssembly runtimes" --session-id wasm-1 --feedback true

The first call plans the report and prints the plan for review. Re-run with
``--feedback true`` to approve it, or with free text to request a new plan.
Checkpoints go to Postgres when POSTGRES_URL is set, otherwise to SQLite.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from dotenv import load_dotenv

from deep_report.agents.report import ReportWriter
from deep_report.api import ResearchServiceError, classify_error, handle_research_request
from deep_report.configuration import Settings
from deep_report.integrations.checkpoint import CheckpointStoreError, open_checkpointer

logger = logging.getLogger(__name__)


async def run_request(
    settings: Settings,
    payload: dict[str, Any],
    configurable: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Open the configured checkpoint saver and handle one request on it."""
    try:
        async with open_checkpointer(settings) as checkpointer:
            writer = ReportWriter(checkpointer=checkpointer, recursion_limit=settings.recursion_limit)
            return await handle_research_request(payload, writer, configurable=configurable)
    except CheckpointStoreError as exc:
        raise ResearchServiceError(classify_error(exc), str(exc)) from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="deep-report",
        description="Plan, research and write a sectioned report with a human review step.",
    )
    parser.add_argument("--topic", required=True, help="Report topic")
    parser.add_argument("--session-id", required=True, help="Thread id used as the checkpoint key")
    parser.add_argument("--feedback", default=None, help="'true' to approve the plan, or feedback text")
    parser.add_argument("--search-api", default=None, help="Search provider (default: tavily)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--json", action="store_true", help="Print the full response as JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the deep-report CLI."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    payload = {"topic": args.topic, "sessionId": args.session_id, "feedback": args.feedback}
    configurable = {"search_api": args.search_api} if args.search_api else None

    try:
        response = asyncio.run(run_request(settings, payload, configurable=configurable))
    except ResearchServiceError as exc:
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(response, indent=2, default=str))
    elif response["status"] == "interrupted":
        print(response["prompt"])
    else:
        print(response["report"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
