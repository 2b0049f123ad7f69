"""Configuration for the report workflow.

Values are resolved once per invocation with the precedence
defaults <- environment variables <- ``config["configurable"]``.

Environment variables use the upper-cased field name, e.g. ``PLANNER_MODEL``
or ``MAX_SEARCH_DEPTH``. ``SEARCH_API_CONFIG`` is parsed as JSON.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping

DEFAULT_REPORT_STRUCTURE = """Use this structure to create a report on the user-provided topic:

1. Introduction (no research needed)
   - Brief overview of the topic area

2. Main Body Sections:
   - Each section should focus on a sub-topic of the user-provided topic

3. Conclusion
   - Aim for 1 structural element (either a list or table) that distills the main body sections
   - Provide a concise summary of the report
"""

# Planner models that get the enlarged output budget and explicit reasoning budget.
EXTENDED_THINKING_MODEL = "claude-3-7-sonnet-latest"
EXTENDED_THINKING_MAX_TOKENS = 20_000
EXTENDED_THINKING_BUDGET_TOKENS = 16_000


class ConfigurationError(ValueError):
    """Invalid configuration value. Fatal; never retried."""


class SearchAPI(str, Enum):
    """Search providers known to the search gateway."""

    PERPLEXITY = "perplexity"
    TAVILY = "tavily"
    EXA = "exa"
    ARXIV = "arxiv"
    PUBMED = "pubmed"
    LINKUP = "linkup"
    DUCKDUCKGO = "duckduckgo"
    GOOGLESEARCH = "googlesearch"


class ModelProvider(str, Enum):
    """Chat model providers known to the LLM factory."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE_GENAI = "google_genai"


@dataclass(frozen=True)
class Configuration:
    """Per-invocation settings of the report workflow."""

    report_structure: str = DEFAULT_REPORT_STRUCTURE
    number_of_queries: int = 2
    max_search_depth: int = 2
    planner_provider: str = ModelProvider.ANTHROPIC.value
    planner_model: str = "claude-3-7-sonnet-latest"
    writer_provider: str = ModelProvider.ANTHROPIC.value
    writer_model: str = "claude-3-5-sonnet-latest"
    search_api: str = SearchAPI.TAVILY.value
    search_api_config: dict[str, Any] = field(default_factory=dict)
    max_tokens_per_source: int = 4_000
    max_plan_revisions: int = 5

    @classmethod
    def from_runnable_config(cls, config: Mapping[str, Any] | None = None) -> "Configuration":
        """Resolve a configuration from defaults, environment and call overrides."""
        configurable = dict((config or {}).get("configurable") or {})
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = configurable.get(f.name)
            if raw is None or raw == "":
                raw = os.environ.get(f.name.upper())
            if raw is None or raw == "":
                continue
            values[f.name] = _coerce(f.name, raw)
        return cls(**values).validated()

    def validated(self) -> "Configuration":
        for name in ("number_of_queries", "max_search_depth", "max_tokens_per_source", "max_plan_revisions"):
            value = getattr(self, name)
            if value < 1:
                raise ConfigurationError(f"{name} must be >= 1, got: {value}")
        if not self.report_structure.strip():
            raise ConfigurationError("report_structure must be non-empty")
        for name in ("planner_model", "writer_model"):
            if not getattr(self, name).strip():
                raise ConfigurationError(f"{name} must be non-empty")
        return self


_INT_FIELDS = {"number_of_queries", "max_search_depth", "max_tokens_per_source", "max_plan_revisions"}


def _coerce(name: str, raw: Any) -> Any:
    if name in _INT_FIELDS:
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{name} must be an integer, got: {raw!r}") from exc
    if name == "search_api_config":
        if isinstance(raw, Mapping):
            return dict(raw)
        try:
            parsed = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"search_api_config must be a JSON object, got: {raw!r}") from exc
        if not isinstance(parsed, dict):
            raise ConfigurationError("search_api_config must be a JSON object")
        return parsed
    if name == "report_structure" and isinstance(raw, Mapping):
        return str(dict(raw))
    if isinstance(raw, Enum):
        return raw.value
    return str(raw)


@dataclass(frozen=True)
class Settings:
    """Process-level settings read from the environment."""

    postgres_url: str = ""
    sqlite_path: str = ".deep_report/checkpoints.sqlite"
    recursion_limit: int = 50

    @classmethod
    def from_env(cls) -> "Settings":
        limit = os.getenv("DEEP_REPORT_RECURSION_LIMIT", "50")
        try:
            recursion_limit = int(limit)
        except ValueError as exc:
            raise ConfigurationError(f"DEEP_REPORT_RECURSION_LIMIT must be an integer, got: {limit!r}") from exc
        if recursion_limit < 10:
            raise ConfigurationError(f"DEEP_REPORT_RECURSION_LIMIT must be >= 10, got: {recursion_limit}")
        return cls(
            postgres_url=os.getenv("POSTGRES_URL", "").strip(),
            sqlite_path=os.getenv("DEEP_REPORT_SQLITE_PATH", ".deep_report/checkpoints.sqlite"),
            recursion_limit=recursion_limit,
        )
