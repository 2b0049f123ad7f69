"""Report workflow: planning, human review, section fan-out, compile."""

from deep_report.agents.report.agent import Interrupted, ReportWriter, ResumeError
from deep_report.agents.report.graph import create_report_graph
from deep_report.agents.report.nodes import IncompleteReportError, PlanRevisionLimitError
from deep_report.agents.report.state import ReportState

__all__ = [
    "IncompleteReportError",
    "Interrupted",
    "PlanRevisionLimitError",
    "ReportState",
    "ReportWriter",
    "ResumeError",
    "create_report_graph",
]
