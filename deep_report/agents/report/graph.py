"""LangGraph wiring for the report workflow.

This module contains only graph construction logic. Node implementations
live in `nodes.py`.
"""

from __future__ import annotations

from typing import Any, cast

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from deep_report.agents.drafting import DraftingService
from deep_report.agents.section.graph import create_section_graph
from deep_report.agents.section.nodes import SearchFn

from .nodes import (
    COMPILE_NODE,
    FINAL_SECTION_NODE,
    GATHER_NODE,
    PLAN_NODE,
    REVIEW_NODE,
    SECTION_RESEARCH_NODE,
    compile_final_report,
    gather_completed_sections,
    generate_report_plan,
    human_feedback,
    initiate_final_section_writing,
    write_final_sections,
)
from .state import FinalSectionState, ReportState, ReportStateInput


def create_report_graph(
    drafter: DraftingService,
    search: SearchFn,
    checkpointer: BaseCheckpointSaver | None = None,
) -> CompiledStateGraph:
    """Create the report graph.

    Flow:
    - generate_report_plan: search the topic, plan sections
    - human_feedback: interrupt for review; approval fans out, feedback loops back
    - build_section_with_web_research: section research subgraph (one per researched section)
    - gather_completed_sections: format researched sections as context
    - write_final_sections: draft-only step per non-research section
    - compile_final_report: join sections in plan order

    Args:
        drafter: Drafting Service used by every writing step.
        search: Search Gateway callable.
        checkpointer: Saver for interrupts and resumes. Required for human review.

    Returns:
        Compiled StateGraph ready for execution.
    """
    graph = StateGraph(ReportState, input_schema=ReportStateInput)

    async def _plan(state: Any, config: RunnableConfig) -> dict[str, Any]:
        return await generate_report_plan(cast(ReportState, state), config, drafter, search)

    async def _write_final(state: Any, config: RunnableConfig) -> dict[str, Any]:
        return await write_final_sections(cast(FinalSectionState, state), config, drafter)

    graph.add_node(PLAN_NODE, _plan)
    graph.add_node(REVIEW_NODE, human_feedback, destinations=(PLAN_NODE, SECTION_RESEARCH_NODE, GATHER_NODE))
    graph.add_node(SECTION_RESEARCH_NODE, create_section_graph(drafter, search))
    graph.add_node(GATHER_NODE, gather_completed_sections)
    graph.add_node(FINAL_SECTION_NODE, _write_final)
    graph.add_node(COMPILE_NODE, compile_final_report)

    graph.set_entry_point(PLAN_NODE)
    graph.add_edge(PLAN_NODE, REVIEW_NODE)
    graph.add_edge(SECTION_RESEARCH_NODE, GATHER_NODE)

    # Sends for sections without research, or straight to compile when there are none
    graph.add_conditional_edges(GATHER_NODE, initiate_final_section_writing, [FINAL_SECTION_NODE, COMPILE_NODE])

    graph.add_edge(FINAL_SECTION_NODE, COMPILE_NODE)
    graph.add_edge(COMPILE_NODE, END)

    return graph.compile(checkpointer=checkpointer, name="report")
