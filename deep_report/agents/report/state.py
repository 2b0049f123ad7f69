"""State definitions for the report workflow."""

from __future__ import annotations

from typing import Annotated, Any, TypedDict

from deep_report.agents.section.state import add_completed_sections


class ReportStateInput(TypedDict):
    topic: str


class ReportState(TypedDict):
    """State for the report graph.

    Attributes:
        topic: Report topic.
        feedback_on_report_plan: Latest reviewer feedback on the plan ("" if none).
        plan_revisions: Number of times the plan was sent back for revision.
        sections: The plan, in authoritative report order.
        completed_sections: Finished sections in arrival order.
        report_sections_from_research: Researched sections formatted as drafting context.
        final_report: The compiled markdown report.
    """

    topic: str
    feedback_on_report_plan: str
    plan_revisions: int
    sections: list[dict[str, Any]]
    completed_sections: Annotated[list[dict[str, Any]], add_completed_sections]
    report_sections_from_research: str
    final_report: str


class FinalSectionState(TypedDict):
    """Input of one draft-only step for a section that needs no research."""

    topic: str
    section: dict[str, Any]
    report_sections_from_research: str
