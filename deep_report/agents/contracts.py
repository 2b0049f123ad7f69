"""Pydantic contracts for structured model output in the report workflows.

Models are used at the Drafting Service boundary. Graph state keeps the
plain ``model_dump()`` form so checkpoints hold only builtin containers.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class Section(BaseModel):
    """A single planned section of the report."""

    name: str = Field(..., min_length=1, description="Name for this section of the report.")
    description: str = Field(..., description="Brief overview of the main topics and concepts covered in this section.")
    research: bool = Field(..., description="Whether to perform web research for this section of the report.")
    content: str = Field("", description="The content of the section.")


class Sections(BaseModel):
    """The report plan: ordered sections with unique names."""

    sections: list[Section] = Field(default_factory=list, description="Sections of the report.")

    @field_validator("sections")
    @classmethod
    def _unique_names(cls, sections: list[Section]) -> list[Section]:
        seen: set[str] = set()
        for section in sections:
            if section.name in seen:
                raise ValueError(f"duplicate section name: {section.name!r}")
            seen.add(section.name)
        return sections


class SearchQuery(BaseModel):
    search_query: str = Field(..., description="Query for web search.")


class Queries(BaseModel):
    queries: list[SearchQuery] = Field(default_factory=list, description="List of search queries.")


class Feedback(BaseModel):
    """Grade of a drafted section."""

    grade: Literal["pass", "fail"] = Field(
        ..., description="Evaluation result indicating whether the response meets requirements ('pass') or needs revision ('fail')."
    )
    follow_up_queries: list[SearchQuery] = Field(
        default_factory=list, description="List of follow-up search queries."
    )


def format_sections(sections: list[dict[str, Any]]) -> str:
    """Format a list of sections into the research context string."""
    formatted = []
    for idx, section in enumerate(sections, 1):
        content = section.get("content") or "[Not yet written]"
        formatted.append(
            f"\n{'=' * 60}\n"
            f"Section {idx}: {section['name']}\n"
            f"{'=' * 60}\n"
            f"Description:\n{section.get('description', '')}\n"
            f"Requires Research:\n{section.get('research', False)}\n\n"
            f"Content:\n{content}\n"
        )
    return "".join(formatted)
