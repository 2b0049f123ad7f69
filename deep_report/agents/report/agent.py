"""Report writer agent wrapper class.

This module contains the high-level `ReportWriter` class that wraps the
LangGraph report workflow. It builds the run config, decides between a
fresh run and a resume, and reports the plan review interrupt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, cast

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.types import Command, Interrupt

from deep_report.agents.drafting import Drafter, DraftingService
from deep_report.agents.section.graph import section_recursion_limit
from deep_report.agents.section.nodes import SearchFn
from deep_report.configuration import Configuration
from deep_report.factory import DefaultLLMFactory
from deep_report.tools.search import select_and_execute_search

from .graph import create_report_graph

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 50


class ResumeError(RuntimeError):
    """Feedback was sent for a thread that has no plan review waiting."""


@dataclass(frozen=True)
class Interrupted:
    """A run paused at the plan review, waiting for feedback."""

    value: Any
    thread_id: str

    @property
    def prompt(self) -> str:
        return self.value if isinstance(self.value, str) else str(self.value)


class ReportWriter:
    """Runs the report workflow for one thread at a time.

    A fresh run pauses once the plan is ready. Resuming the same thread
    with ``"true"`` approves the plan; any other text is treated as
    feedback and triggers a new plan.

    Example:
        ```python
        writer = ReportWriter()

        review = writer.run("wasm-1", topic="WebAssembly runtimes")
        print(review.prompt)

        result = writer.run("wasm-1", feedback="true")
        print(result["final_report"])
        ```
    """

    def __init__(
        self,
        checkpointer: BaseCheckpointSaver | None = None,
        drafter: DraftingService | None = None,
        search: SearchFn | None = None,
        llm_factory: DefaultLLMFactory | None = None,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ):
        """Initialize the report writer.

        Args:
            checkpointer: LangGraph checkpoint saver; defaults to an `InMemorySaver`.
            drafter: Drafting Service; defaults to a `Drafter` over `llm_factory`.
            search: Search Gateway callable; defaults to `select_and_execute_search`.
            llm_factory: Factory for the default drafter's chat models.
            recursion_limit: Minimum number of graph steps allowed per invocation.
                Raised automatically when `max_search_depth` needs more.
        """
        self.checkpointer = checkpointer if checkpointer is not None else InMemorySaver()
        self.drafter = drafter or Drafter(llm_factory)
        self.search = search or select_and_execute_search
        self.recursion_limit = recursion_limit
        self.graph = create_report_graph(self.drafter, self.search, self.checkpointer)

    def _config(self, thread_id: str, configurable: Mapping[str, Any] | None) -> RunnableConfig:
        configuration = Configuration.from_runnable_config({"configurable": dict(configurable or {})})
        # Each section subgraph runs under the same limit as the parent
        recursion_limit = max(self.recursion_limit, section_recursion_limit(configuration.max_search_depth))
        return {
            "configurable": {**dict(configurable or {}), "thread_id": thread_id},
            "recursion_limit": recursion_limit,
        }

    async def _pending_review(self, config: RunnableConfig) -> Interrupt | None:
        snapshot = await self.graph.aget_state(config)
        for task in snapshot.tasks:
            if task.interrupts:
                return task.interrupts[0]
        return None

    async def pending_review(self, thread_id: str) -> Interrupted | None:
        """Return the plan review `thread_id` is waiting on, if any."""
        pending = await self._pending_review({"configurable": {"thread_id": thread_id}})
        if pending is None:
            return None
        return Interrupted(value=pending.value, thread_id=thread_id)

    async def arun(
        self,
        thread_id: str,
        topic: str | None = None,
        feedback: Any = None,
        configurable: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | Interrupted:
        """Start a report on `topic`, or resume `thread_id` with `feedback`.

        Returns:
            The final report state, or `Interrupted` carrying the review prompt.

        Raises:
            ResumeError: `feedback` was given but no plan review is pending.
        """
        config = self._config(thread_id, configurable)

        if feedback is not None:
            if await self._pending_review(config) is None:
                raise ResumeError(f"Thread {thread_id!r} has no plan review waiting for feedback")
            logger.info("Resuming thread %s with plan feedback", thread_id)
            result = await self.graph.ainvoke(Command(resume=feedback), config)
        else:
            if not topic:
                raise ValueError("topic is required to start a report")
            snapshot = await self.graph.aget_state(config)
            if snapshot.values:
                logger.warning("Thread %s already has a checkpoint; starting a new run over it", thread_id)
                await self.checkpointer.adelete_thread(thread_id)
            result = await self.graph.ainvoke({"topic": topic}, config)

        pending = await self._pending_review(config)
        if pending is not None:
            logger.info("Thread %s waiting for plan review", thread_id)
            return Interrupted(value=pending.value, thread_id=thread_id)
        return cast(dict[str, Any], result)

    def run(
        self,
        thread_id: str,
        topic: str | None = None,
        feedback: Any = None,
        configurable: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | Interrupted:
        """Synchronous wrapper around `arun`."""
        return asyncio.run(self.arun(thread_id, topic=topic, feedback=feedback, configurable=configurable))
