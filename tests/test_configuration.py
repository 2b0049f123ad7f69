"""Tests for configuration resolution and runtime settings."""

from __future__ import annotations

import pytest

from deep_report.configuration import (
    DEFAULT_REPORT_STRUCTURE,
    Configuration,
    ConfigurationError,
    Settings,
)


class TestConfiguration:
    def test_defaults(self):
        config = Configuration.from_runnable_config(None)

        assert config.report_structure == DEFAULT_REPORT_STRUCTURE
        assert config.number_of_queries == 2
        assert config.max_search_depth == 2
        assert config.planner_model == "claude-3-7-sonnet-latest"
        assert config.writer_model == "claude-3-5-sonnet-latest"
        assert config.search_api == "tavily"
        assert config.search_api_config == {}
        assert config.max_plan_revisions == 5

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("MAX_SEARCH_DEPTH", "4")
        monkeypatch.setenv("SEARCH_API_CONFIG", '{"depth": "deep"}')

        config = Configuration.from_runnable_config({})

        assert config.max_search_depth == 4
        assert config.search_api_config == {"depth": "deep"}

    def test_call_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("WRITER_MODEL", "gpt-4o")

        config = Configuration.from_runnable_config(
            {"configurable": {"writer_model": "gpt-4o-mini", "writer_provider": "openai", "thread_id": "x"}}
        )

        assert config.writer_model == "gpt-4o-mini"
        assert config.writer_provider == "openai"

    def test_empty_override_falls_through(self, monkeypatch):
        monkeypatch.setenv("PLANNER_MODEL", "gpt-4o")

        config = Configuration.from_runnable_config({"configurable": {"planner_model": ""}})

        assert config.planner_model == "gpt-4o"

    def test_resolved_configuration_is_immutable(self):
        config = Configuration.from_runnable_config(None)

        with pytest.raises(AttributeError):
            config.max_search_depth = 10

    @pytest.mark.parametrize(
        "overrides",
        [
            {"number_of_queries": 0},
            {"max_search_depth": "two"},
            {"search_api_config": "[1, 2]"},
            {"planner_model": "   "},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            Configuration.from_runnable_config({"configurable": overrides})


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_URL", " postgresql://u:p@db/reports ")
        monkeypatch.setenv("DEEP_REPORT_RECURSION_LIMIT", "80")

        settings = Settings.from_env()

        assert settings.postgres_url == "postgresql://u:p@db/reports"
        assert settings.recursion_limit == 80

    def test_recursion_limit_floor(self, monkeypatch):
        monkeypatch.setenv("DEEP_REPORT_RECURSION_LIMIT", "3")

        with pytest.raises(ConfigurationError):
            Settings.from_env()
