"""LangGraph wiring for the per-section research loop."""

from __future__ import annotations

from typing import Any, cast

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph
from langgraph.types import Command

from deep_report.agents.drafting import DraftingService

from .nodes import SearchFn, generate_queries, search_web, write_section
from .state import SectionInputState, SectionOutputState, SectionState


def section_recursion_limit(max_search_depth: int) -> int:
    """Graph steps one section may take: query generation plus a search and a write per pass."""
    return 2 * (max_search_depth + 2)


def create_section_graph(drafter: DraftingService, search: SearchFn) -> CompiledStateGraph:
    """Create the graph that researches and writes one report section.

    Flow:
    - generate_queries: initial queries for the section
    - search_web: one search pass (counts toward max_search_depth)
    - write_section: draft + grade, then END or back to search_web

    Runs with a ``recursion_limit`` of at least
    ``section_recursion_limit(max_search_depth)``.
    """
    graph = StateGraph(SectionState, input_schema=SectionInputState, output_schema=SectionOutputState)

    async def _generate_queries(state: Any, config: RunnableConfig) -> dict[str, Any]:
        return await generate_queries(cast(SectionState, state), config, drafter)

    async def _search_web(state: Any, config: RunnableConfig) -> dict[str, Any]:
        return await search_web(cast(SectionState, state), config, search)

    async def _write_section(state: Any, config: RunnableConfig) -> Command:
        return await write_section(cast(SectionState, state), config, drafter)

    graph.add_node("generate_queries", _generate_queries)
    graph.add_node("search_web", _search_web)
    graph.add_node("write_section", _write_section, destinations=("search_web", END))

    graph.set_entry_point("generate_queries")
    graph.add_edge("generate_queries", "search_web")
    graph.add_edge("search_web", "write_section")

    return graph.compile(name="section_research")
