"""Node implementations for the section research loop.

generate_queries -> search_web -> write_section, where write_section either
ends the loop or routes back to search_web with follow-up queries.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END
from langgraph.types import Command

from deep_report.agents.contracts import Feedback, Queries
from deep_report.agents.drafting import DraftingService, ModelSpec
from deep_report.agents.prompts import (
    QUERY_WRITER_INSTRUCTIONS,
    SECTION_GRADER_INSTRUCTIONS,
    SECTION_GRADER_MESSAGE,
    SECTION_WRITER_INPUTS,
    SECTION_WRITER_INSTRUCTIONS,
)
from deep_report.configuration import Configuration
from deep_report.tools.search import get_search_params

from .state import SectionState

logger = logging.getLogger(__name__)

QUERY_GENERATION_ATTEMPTS = 2

SearchFn = Callable[[str, list[str], Mapping[str, Any], int], Awaitable[str]]


def writer_spec(configurable: Configuration) -> ModelSpec:
    return ModelSpec(provider=configurable.writer_provider, model=configurable.writer_model)


def planner_spec(configurable: Configuration) -> ModelSpec:
    return ModelSpec(provider=configurable.planner_provider, model=configurable.planner_model)


async def generate_queries(state: SectionState, config: RunnableConfig, drafter: DraftingService) -> dict[str, Any]:
    """Write the initial search queries for the section."""
    configurable = Configuration.from_runnable_config(config)
    section = state["section"]

    system_prompt = QUERY_WRITER_INSTRUCTIONS.format(
        topic=state["topic"],
        section_topic=section["description"],
        number_of_queries=configurable.number_of_queries,
    )
    queries = await drafter.complete_structured(
        system_prompt,
        "Generate search queries on the provided topic.",
        writer_spec(configurable),
        Queries,
        run_name="section-query-writer",
        attempts=QUERY_GENERATION_ATTEMPTS,
    )
    search_queries = [q.search_query for q in queries.queries][: configurable.number_of_queries]
    logger.info("Section %r: %d search queries", section["name"], len(search_queries))
    return {"search_queries": search_queries}


async def search_web(state: SectionState, config: RunnableConfig, search: SearchFn) -> dict[str, Any]:
    """Run one search pass over the current queries."""
    configurable = Configuration.from_runnable_config(config)
    params = get_search_params(configurable.search_api, configurable.search_api_config)
    source_str = await search(
        configurable.search_api,
        list(state.get("search_queries") or []),
        params,
        configurable.max_tokens_per_source,
    )
    return {
        "source_str": source_str,
        "search_iterations": int(state.get("search_iterations") or 0) + 1,
    }


async def write_section(state: SectionState, config: RunnableConfig, drafter: DraftingService) -> Command:
    """Draft the section from the latest sources, then grade the draft.

    The loop continues only when the grade is "fail" and fewer than
    `max_search_depth` searches have run; otherwise the current draft is
    emitted even if it still fails.
    """
    configurable = Configuration.from_runnable_config(config)
    section = dict(state["section"])
    iterations = int(state.get("search_iterations") or 0)

    section_input = SECTION_WRITER_INPUTS.format(
        topic=state["topic"],
        section_name=section["name"],
        section_topic=section["description"],
        section_content=section.get("content") or "",
        context=state.get("source_str") or "",
    )
    section["content"] = await drafter.complete(
        SECTION_WRITER_INSTRUCTIONS,
        section_input,
        writer_spec(configurable),
        run_name="section-writer",
    )

    grader_instructions = SECTION_GRADER_INSTRUCTIONS.format(
        topic=state["topic"],
        section_topic=section["description"],
        section=section["content"],
        number_of_follow_up_queries=configurable.number_of_queries,
    )
    feedback = await drafter.complete_structured(
        grader_instructions,
        SECTION_GRADER_MESSAGE,
        planner_spec(configurable),
        Feedback,
        run_name="section-grader",
    )

    if feedback.grade == "pass" or iterations >= configurable.max_search_depth:
        if feedback.grade == "fail":
            logger.info("Section %r still failing after %d searches; keeping best draft", section["name"], iterations)
        return Command(update={"section": section, "completed_sections": [section]}, goto=END)

    follow_up = [q.search_query for q in feedback.follow_up_queries if q.search_query.strip()]
    logger.info("Section %r graded fail (search %d); searching again", section["name"], iterations)
    return Command(
        update={"section": section, "search_queries": follow_up or list(state.get("search_queries") or [])},
        goto="search_web",
    )
