"""State definitions for the per-section research workflow.

One Section Workflow instance runs per research-requiring section. Its input
is isolated from its siblings; only `completed_sections` flows back to the
parent report at fan-in.
"""

from __future__ import annotations

from typing import Annotated, Any, TypedDict

from langgraph.errors import InvalidUpdateError


def add_completed_sections(current: list[dict[str, Any]], new: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Append finished sections, rejecting a second entry for the same section name."""
    names = {section["name"] for section in current}
    merged = list(current)
    for section in new or []:
        if section["name"] in names:
            raise InvalidUpdateError(f"Section {section['name']!r} was completed twice")
        names.add(section["name"])
        merged.append(section)
    return merged


class SectionInputState(TypedDict):
    topic: str
    section: dict[str, Any]
    search_iterations: int


class SectionOutputState(TypedDict):
    completed_sections: Annotated[list[dict[str, Any]], add_completed_sections]


class SectionState(TypedDict):
    """State for one section's research loop.

    Writer and grader models are not carried in the state; every step reads
    `writer_provider`, `writer_model`, `planner_provider` and `planner_model`
    from the run config through `Configuration.from_runnable_config`.

    Attributes:
        topic: Report topic.
        section: The section being written (name, description, research, content).
        search_iterations: Completed passes through `search_web`.
        search_queries: Queries for the next search pass.
        source_str: Formatted source text from the latest search.
        completed_sections: The finished section, emitted once the loop ends.
    """

    topic: str
    section: dict[str, Any]
    search_iterations: int
    search_queries: list[str]
    source_str: str
    completed_sections: Annotated[list[dict[str, Any]], add_completed_sections]
