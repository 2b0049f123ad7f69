"""Per-section research workflow (query, search, write, grade loop)."""

from deep_report.agents.section.graph import create_section_graph, section_recursion_limit
from deep_report.agents.section.state import SectionState, add_completed_sections

__all__ = [
    "SectionState",
    "add_completed_sections",
    "create_section_graph",
    "section_recursion_limit",
]
