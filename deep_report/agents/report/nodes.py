"""Node implementations for the report workflow.

generate_report_plan -> human_feedback -> (fan-out) section research ->
gather_completed_sections -> (fan-out) write_final_sections ->
compile_final_report
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.runnables import RunnableConfig
from langgraph.types import Command, Send, interrupt

from deep_report.agents.contracts import Queries, Sections, format_sections
from deep_report.agents.drafting import DraftingService
from deep_report.agents.prompts import (
    FINAL_SECTION_USER_MESSAGE,
    FINAL_SECTION_WRITER_INSTRUCTIONS,
    HUMAN_FEEDBACK_PROMPT,
    PLANNER_USER_MESSAGE,
    REPORT_PLANNER_INSTRUCTIONS,
    REPORT_PLANNER_QUERY_WRITER_INSTRUCTIONS,
)
from deep_report.agents.section.nodes import SearchFn, planner_spec, writer_spec
from deep_report.configuration import Configuration
from deep_report.tools.search import get_search_params

from .state import FinalSectionState, ReportState

logger = logging.getLogger(__name__)

SECTION_RESEARCH_NODE = "build_section_with_web_research"
GATHER_NODE = "gather_completed_sections"
FINAL_SECTION_NODE = "write_final_sections"
COMPILE_NODE = "compile_final_report"
PLAN_NODE = "generate_report_plan"
REVIEW_NODE = "human_feedback"


class PlanRevisionLimitError(RuntimeError):
    """The plan was rejected more times than `max_plan_revisions` allows.

    The suspended review checkpoint is left in place, so the thread can
    still be resumed with an approval.
    """


class IncompleteReportError(RuntimeError):
    """A planned section has no completed content at compile time."""


def is_approval(feedback: Any) -> bool:
    """True for the literal ``true`` in any letter case (or a boolean True)."""
    if isinstance(feedback, bool):
        return feedback
    return isinstance(feedback, str) and feedback.lower() == "true"


def render_plan(sections: list[dict[str, Any]]) -> str:
    return "\n\n".join(
        f"Section: {s['name']}\n"
        f"Description: {s['description']}\n"
        f"Research needed: {'Yes' if s.get('research') else 'No'}"
        for s in sections
    )


async def generate_report_plan(
    state: ReportState,
    config: RunnableConfig,
    drafter: DraftingService,
    search: SearchFn,
) -> dict[str, Any]:
    """Plan the report sections from a round of topic searches.

    Reviewer feedback from a previous rejection, if any, is included in the
    planner prompt.
    """
    configurable = Configuration.from_runnable_config(config)
    topic = state["topic"]
    feedback = state.get("feedback_on_report_plan") or ""

    query_prompt = REPORT_PLANNER_QUERY_WRITER_INSTRUCTIONS.format(
        topic=topic,
        report_organization=configurable.report_structure,
        number_of_queries=configurable.number_of_queries,
    )
    queries = await drafter.complete_structured(
        query_prompt,
        "Generate search queries that will help with planning the sections of the report.",
        writer_spec(configurable),
        Queries,
        run_name="report-query-writer",
    )
    query_list = [q.search_query for q in queries.queries][: configurable.number_of_queries]

    params = get_search_params(configurable.search_api, configurable.search_api_config)
    source_str = await search(configurable.search_api, query_list, params, configurable.max_tokens_per_source)

    planner_prompt = REPORT_PLANNER_INSTRUCTIONS.format(
        topic=topic,
        report_organization=configurable.report_structure,
        context=source_str,
        feedback=feedback,
    )
    plan = await drafter.complete_structured(
        planner_prompt,
        PLANNER_USER_MESSAGE,
        planner_spec(configurable),
        Sections,
        run_name="report-planner",
    )
    logger.info("Planned %d sections for %r", len(plan.sections), topic)
    return {"sections": [section.model_dump() for section in plan.sections]}


def human_feedback(state: ReportState, config: RunnableConfig) -> Command:
    """Suspend for plan review, then fan out on approval or loop back with feedback.

    Raises:
        PlanRevisionLimitError: The rejection would exceed `max_plan_revisions`.
    """
    configurable = Configuration.from_runnable_config(config)
    sections = state.get("sections") or []

    feedback = interrupt(HUMAN_FEEDBACK_PROMPT.format(sections=render_plan(sections)))

    if is_approval(feedback):
        sends = [
            Send(SECTION_RESEARCH_NODE, {"topic": state["topic"], "section": section, "search_iterations": 0})
            for section in sections
            if section.get("research")
        ]
        logger.info("Plan approved; researching %d sections", len(sends))
        if not sends:
            return Command(goto=GATHER_NODE)
        return Command(goto=sends)

    revisions = int(state.get("plan_revisions") or 0) + 1
    if revisions > configurable.max_plan_revisions:
        raise PlanRevisionLimitError(
            f"Report plan rejected {revisions} times; max_plan_revisions is {configurable.max_plan_revisions}"
        )
    text = feedback if isinstance(feedback, str) else str(feedback)
    logger.info("Plan rejected (revision %d); regenerating", revisions)
    return Command(
        goto=PLAN_NODE,
        update={"feedback_on_report_plan": text, "plan_revisions": revisions},
    )


def gather_completed_sections(state: ReportState) -> dict[str, Any]:
    """Format researched sections as context for the remaining sections."""
    return {"report_sections_from_research": format_sections(list(state.get("completed_sections") or []))}


def initiate_final_section_writing(state: ReportState) -> list[Send] | str:
    """Fan out one draft-only step per section that needs no research."""
    sends = [
        Send(
            FINAL_SECTION_NODE,
            {
                "topic": state["topic"],
                "section": section,
                "report_sections_from_research": state.get("report_sections_from_research") or "",
            },
        )
        for section in state.get("sections") or []
        if not section.get("research")
    ]
    return sends or COMPILE_NODE


async def write_final_sections(
    state: FinalSectionState,
    config: RunnableConfig,
    drafter: DraftingService,
) -> dict[str, Any]:
    """Write a non-research section from the already researched content."""
    configurable = Configuration.from_runnable_config(config)
    section = dict(state["section"])
    system_prompt = FINAL_SECTION_WRITER_INSTRUCTIONS.format(
        topic=state["topic"],
        section_name=section["name"],
        section_topic=section["description"],
        context=state.get("report_sections_from_research") or "",
    )
    section["content"] = await drafter.complete(
        system_prompt,
        FINAL_SECTION_USER_MESSAGE,
        writer_spec(configurable),
        run_name="final-section-writer",
    )
    return {"completed_sections": [section]}


def compile_final_report(state: ReportState) -> dict[str, Any]:
    """Join completed sections in plan order, separated by blank lines.

    Raises:
        IncompleteReportError: A planned section never completed.
    """
    completed = {section["name"]: section["content"] for section in state.get("completed_sections") or []}
    missing = [s["name"] for s in state.get("sections") or [] if s["name"] not in completed]
    if missing:
        raise IncompleteReportError(f"Sections missing from the report: {', '.join(missing)}")

    sections = [{**s, "content": completed[s["name"]]} for s in state.get("sections") or []]
    return {
        "sections": sections,
        "final_report": "\n\n".join(section["content"] for section in sections),
    }
