"""Interactive script for plan -> review -> research -> final report.

Plans the report, prints the plan, and asks for feedback on stdin until the
plan is approved with "true". Checkpoints go to a local SQLite file, so the
script can be stopped at the review prompt and restarted with the same
session id.

Edit the constants below to configure the run.

Usage:
    poetry run python examples/run_report/run_report.py
    poetry run python examples/run_report/run_report.py --topic "Your topic here" --session-id my-report
"""

import argparse
import asyncio
import os
import uuid

from dotenv import load_dotenv

from deep_report.agents import Interrupted, ReportWriter
from deep_report.configuration import Settings
from deep_report.integrations import is_observability_enabled, open_checkpointer

# Configuration - edit these values directly
DEFAULT_TOPIC = "The state of WebAssembly runtimes outside the browser"
SEARCH_API = "tavily"  # tavily|googlesearch
NUMBER_OF_QUERIES = 2
MAX_SEARCH_DEPTH = 2
PLANNER_PROVIDER = "anthropic"
PLANNER_MODEL = "claude-3-7-sonnet-latest"
WRITER_PROVIDER = "anthropic"
WRITER_MODEL = "claude-3-5-sonnet-latest"
CHECKPOINT_PATH = os.path.join(os.path.dirname(__file__), "checkpoints.sqlite")

CONFIGURABLE = {
    "search_api": SEARCH_API,
    "number_of_queries": NUMBER_OF_QUERIES,
    "max_search_depth": MAX_SEARCH_DEPTH,
    "planner_provider": PLANNER_PROVIDER,
    "planner_model": PLANNER_MODEL,
    "writer_provider": WRITER_PROVIDER,
    "writer_model": WRITER_MODEL,
}

env_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(env_path)


async def run(args):
    async with open_checkpointer(Settings(sqlite_path=CHECKPOINT_PATH)) as checkpointer:
        writer = ReportWriter(checkpointer=checkpointer)

        print(f"Observability: {'enabled' if is_observability_enabled() else 'disabled'}")

        if args.session_id:
            session_id = args.session_id
            result = await writer.pending_review(session_id)
            if result is None:
                print(f"No plan review pending for session {session_id}")
                return
        else:
            session_id = f"report-{uuid.uuid4().hex[:8]}"
            print(f"Session: {session_id}\nTopic: {args.topic}\n")
            result = await writer.arun(session_id, topic=args.topic, configurable=CONFIGURABLE)

        while isinstance(result, Interrupted):
            print("\n" + "=" * 80)
            print(result.prompt)
            print("=" * 80)
            feedback = input("\nFeedback ('true' to approve): ").strip()
            result = await writer.arun(session_id, feedback=feedback, configurable=CONFIGURABLE)

    print("\n" + "=" * 80)
    print("FINAL REPORT")
    print("=" * 80 + "\n")
    print(result["final_report"])


def main():
    parser = argparse.ArgumentParser(description="Run the report writer with an interactive plan review")
    parser.add_argument("--topic", default=DEFAULT_TOPIC, help="Report topic")
    parser.add_argument("--session-id", default=None, help="Resume an existing session instead of starting one")
    args = parser.parse_args()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
