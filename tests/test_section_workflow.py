"""Tests for the per-section research loop."""

from __future__ import annotations

import asyncio

import pytest
from langgraph.errors import GraphRecursionError, InvalidUpdateError

from deep_report.agents.contracts import Feedback, SearchQuery
from deep_report.agents.section import add_completed_sections, create_section_graph, section_recursion_limit

from fakes import FakeDrafter, FakeSearch, always_fail, always_pass

SECTION = {"name": "Runtimes", "description": "Popular WebAssembly runtimes", "research": True, "content": ""}


def _run(drafter, search, max_search_depth=2, recursion_limit=None, **configurable):
    graph = create_section_graph(drafter, search)
    config = {
        "configurable": {"max_search_depth": max_search_depth, **configurable},
        "recursion_limit": recursion_limit or section_recursion_limit(max_search_depth),
    }
    return asyncio.run(graph.ainvoke({"topic": "WebAssembly", "section": SECTION, "search_iterations": 0}, config))


class TestSectionLoop:
    """Quality gate and loop bound."""

    def test_early_pass_stops_after_one_search(self):
        drafter, search = FakeDrafter(grade=always_pass), FakeSearch()

        result = _run(drafter, search)

        assert len(search.calls) == 1
        assert result == {
            "completed_sections": [{**SECTION, "content": "## Runtimes\ncontent for Runtimes"}],
        }

    def test_always_failing_grade_is_bounded_by_depth(self):
        drafter, search = FakeDrafter(grade=always_fail), FakeSearch()

        result = _run(drafter, search, max_search_depth=2)

        assert len(search.calls) == 2
        assert drafter.grade_counts["Popular WebAssembly runtimes"] == 2
        assert len(result["completed_sections"]) == 1
        assert result["completed_sections"][0]["content"] == "## Runtimes\ncontent for Runtimes"

    def test_depth_three_allows_three_searches(self):
        drafter, search = FakeDrafter(grade=always_fail), FakeSearch()

        _run(drafter, search, max_search_depth=3)

        assert len(search.calls) == 3

    def test_pass_on_second_grade(self):
        def second_time_lucky(topic: str, attempt: int) -> Feedback:
            return always_pass(topic, attempt) if attempt == 2 else always_fail(topic, attempt)

        drafter, search = FakeDrafter(grade=second_time_lucky), FakeSearch()

        _run(drafter, search, max_search_depth=5)

        assert len(search.calls) == 2

    def test_follow_up_queries_replace_search_queries(self):
        drafter, search = FakeDrafter(grade=always_fail), FakeSearch()

        _run(drafter, search, max_search_depth=2)

        assert search.calls[0]["queries"] == ["section-query-writer query 0", "section-query-writer query 1"]
        assert search.calls[1]["queries"] == ["more on Popular WebAssembly runtimes"]

    def test_empty_follow_ups_reuse_previous_queries(self):
        def fail_without_queries(topic: str, attempt: int) -> Feedback:
            return Feedback(grade="fail", follow_up_queries=[SearchQuery(search_query="  ")])

        drafter, search = FakeDrafter(grade=fail_without_queries), FakeSearch()

        _run(drafter, search, max_search_depth=2)

        assert search.calls[1]["queries"] == search.calls[0]["queries"]


class TestSectionRecursionLimit:
    """Step budget for deep search loops."""

    def test_limit_grows_with_depth(self):
        assert section_recursion_limit(2) == 8
        assert section_recursion_limit(30) == 64

    def test_deep_always_failing_loop_completes_within_limit(self):
        drafter, search = FakeDrafter(grade=always_fail), FakeSearch()

        result = _run(drafter, search, max_search_depth=30)

        assert len(search.calls) == 30
        assert drafter.grade_counts["Popular WebAssembly runtimes"] == 30
        assert len(result["completed_sections"]) == 1

    def test_fixed_limit_of_fifty_is_too_small_for_depth_thirty(self):
        drafter, search = FakeDrafter(grade=always_fail), FakeSearch()

        with pytest.raises(GraphRecursionError):
            _run(drafter, search, max_search_depth=30, recursion_limit=50)


class TestSectionSteps:
    """Configuration flowing into the individual steps."""

    def test_query_generation_uses_two_attempts_and_configured_count(self):
        drafter, search = FakeDrafter(), FakeSearch()

        _run(drafter, search, number_of_queries=3)

        assert drafter.attempts["section-query-writer"] == 2
        assert len(search.calls[0]["queries"]) == 3

    def test_search_receives_filtered_params_and_token_budget(self):
        drafter, search = FakeDrafter(), FakeSearch()

        _run(
            drafter,
            search,
            search_api="linkup",
            search_api_config={"depth": "deep", "bogus": 1},
            max_tokens_per_source=1000,
        )

        assert search.calls[0]["api"] == "linkup"
        assert search.calls[0]["params"] == {"depth": "deep"}
        assert search.calls[0]["max_tokens"] == 1000

    def test_writer_and_grader_models(self):
        drafter, search = FakeDrafter(), FakeSearch()

        _run(drafter, search, writer_provider="openai", writer_model="gpt-4o", planner_model="o3-mini", planner_provider="openai")

        assert drafter.models["section-writer"].model == "gpt-4o"
        assert drafter.models["section-grader"].model == "o3-mini"

    def test_drafting_failure_aborts_with_cause(self):
        drafter, search = FakeDrafter(fail_on="Runtimes"), FakeSearch()

        with pytest.raises(RuntimeError, match="drafting failed for Runtimes"):
            _run(drafter, search)


class TestAddCompletedSections:
    def test_appends_in_order(self):
        merged = add_completed_sections([{"name": "A"}], [{"name": "B"}])

        assert [s["name"] for s in merged] == ["A", "B"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidUpdateError):
            add_completed_sections([{"name": "A"}], [{"name": "A"}])
