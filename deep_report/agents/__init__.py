"""Agent implementations - report and section workflows plus the Drafting Service."""

from deep_report.agents.contracts import Feedback, Queries, SearchQuery, Section, Sections
from deep_report.agents.drafting import Drafter, DraftingService, ModelSpec, extract_text
from deep_report.agents.report import (
    IncompleteReportError,
    PlanRevisionLimitError,
    Interrupted,
    ReportState,
    ReportWriter,
    ResumeError,
    create_report_graph,
)
from deep_report.agents.section import SectionState, create_section_graph, section_recursion_limit

__all__ = [
    # Contracts
    "Feedback",
    "Queries",
    "SearchQuery",
    "Section",
    "Sections",
    # Drafting
    "Drafter",
    "DraftingService",
    "ModelSpec",
    "extract_text",
    # Report workflow
    "IncompleteReportError",
    "PlanRevisionLimitError",
    "Interrupted",
    "ReportState",
    "ReportWriter",
    "ResumeError",
    "create_report_graph",
    # Section workflow
    "SectionState",
    "create_section_graph",
    "section_recursion_limit",
]
