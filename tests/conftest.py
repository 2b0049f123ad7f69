"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest

from fakes import FakeDrafter, FakeSearch


@pytest.fixture
def fake_drafter() -> FakeDrafter:
    return FakeDrafter()


@pytest.fixture
def fake_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host configuration out of the resolved workflow settings."""
    for var in (
        "NUMBER_OF_QUERIES",
        "MAX_SEARCH_DEPTH",
        "PLANNER_PROVIDER",
        "PLANNER_MODEL",
        "WRITER_PROVIDER",
        "WRITER_MODEL",
        "SEARCH_API",
        "SEARCH_API_CONFIG",
        "MAX_TOKENS_PER_SOURCE",
        "MAX_PLAN_REVISIONS",
        "REPORT_STRUCTURE",
        "POSTGRES_URL",
        "DEEP_REPORT_RECURSION_LIMIT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LANGFUSE_ENABLED", "false")
