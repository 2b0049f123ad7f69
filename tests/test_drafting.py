"""Tests for the chat model factory and the Drafting Service."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from deep_report.agents.contracts import Queries, SearchQuery
from deep_report.agents.drafting import Drafter, ModelSpec, extract_text
from deep_report.configuration import ConfigurationError
from deep_report.factory import DefaultLLMFactory, extended_thinking_kwargs


class TestDefaultLLMFactory:
    """Provider dispatch and extended-thinking parameters."""

    @patch("deep_report.factory._BUILDERS")
    def test_dispatches_by_provider(self, builders):
        openai_builder = MagicMock()
        builders.__getitem__.side_effect = lambda provider: {"openai": openai_builder}[provider.value]

        llm = DefaultLLMFactory().get_llm("writer", "openai", "gpt-4o")

        assert llm is openai_builder.return_value
        openai_builder.assert_called_once_with(model="gpt-4o", temperature=0, name="writer")

    @patch("deep_report.factory._BUILDERS")
    def test_extended_thinking_model_gets_budget_and_no_temperature(self, builders):
        anthropic_builder = MagicMock()
        builders.__getitem__.return_value = anthropic_builder

        DefaultLLMFactory().get_llm("planner", "anthropic", "claude-3-7-sonnet-latest")

        anthropic_builder.assert_called_once_with(
            model="claude-3-7-sonnet-latest",
            temperature=None,
            name="planner",
            max_tokens=20000,
            thinking={"type": "enabled", "budget_tokens": 16000},
        )

    @patch("deep_report.factory._BUILDERS")
    def test_plain_models_are_cached(self, builders):
        builder = MagicMock()
        builders.__getitem__.return_value = builder
        factory = DefaultLLMFactory()

        first = factory.get_llm("writer", "anthropic", "claude-3-5-sonnet-latest")
        second = factory.get_llm("writer", "anthropic", "claude-3-5-sonnet-latest")

        assert first is second
        builder.assert_called_once()

    @patch("deep_report.factory._BUILDERS")
    def test_agent_config_overrides(self, builders):
        builder = MagicMock()
        builders.__getitem__.return_value = builder

        DefaultLLMFactory(agent_config={"grader": {"max_tokens": 512}}).get_llm("grader", "openai", "gpt-4o")

        assert builder.call_args.kwargs["max_tokens"] == 512

    def test_unknown_provider_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            DefaultLLMFactory().get_llm("writer", "mistral", "large")

    def test_extended_thinking_kwargs_only_for_designated_model(self):
        assert extended_thinking_kwargs("claude-3-5-sonnet-latest") == {}
        assert extended_thinking_kwargs("claude-3-7-sonnet-latest")["max_tokens"] == 20000

    @patch("deep_report.integrations.observability.ChatOpenAI")
    def test_openai_builder_end_to_end(self, chat_openai):
        DefaultLLMFactory().get_llm("writer", "openai", "gpt-4o-mini")

        chat_openai.assert_called_once_with(model="gpt-4o-mini", temperature=0, name="writer")


class TestExtractText:
    def test_string_content(self):
        assert extract_text(AIMessage(content="plain")) == "plain"

    def test_thinking_blocks_are_skipped(self):
        message = AIMessage(
            content=[
                {"type": "thinking", "thinking": "let me think", "signature": "sig"},
                {"type": "text", "text": "## Section"},
                {"type": "text", "text": "Body"},
            ]
        )

        assert extract_text(message) == "## Section\nBody"

    def test_raw_content_accepted(self):
        assert extract_text(["a", {"text": "b"}]) == "a\nb"


class TestDrafter:
    def _drafter(self, llm):
        factory = MagicMock()
        factory.get_llm.return_value = llm
        return Drafter(factory), factory

    def test_complete_sends_system_and_user_messages(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content="drafted"))
        drafter, factory = self._drafter(llm)

        text = asyncio.run(drafter.complete("sys", "user", ModelSpec("openai", "gpt-4o"), run_name="section-writer"))

        assert text == "drafted"
        factory.get_llm.assert_called_once_with("section-writer", "openai", "gpt-4o")
        messages = llm.ainvoke.call_args.args[0]
        assert isinstance(messages[0], SystemMessage) and messages[0].content == "sys"
        assert isinstance(messages[1], HumanMessage) and messages[1].content == "user"

    def test_complete_structured_retries_when_asked(self):
        runner = MagicMock()
        retrying = MagicMock()
        retrying.ainvoke = AsyncMock(return_value=Queries(queries=[SearchQuery(search_query="q")]))
        runner.with_retry.return_value = retrying
        llm = MagicMock()
        llm.with_structured_output.return_value = runner
        drafter, _ = self._drafter(llm)

        result = asyncio.run(
            drafter.complete_structured("sys", "user", ModelSpec("openai", "gpt-4o"), Queries, run_name="q", attempts=2)
        )

        assert result.queries[0].search_query == "q"
        llm.with_structured_output.assert_called_once_with(Queries)
        runner.with_retry.assert_called_once_with(stop_after_attempt=2)

    def test_complete_structured_validates_dict_output(self):
        runner = MagicMock()
        runner.ainvoke = AsyncMock(return_value={"queries": [{"search_query": "from dict"}]})
        llm = MagicMock()
        llm.with_structured_output.return_value = runner
        drafter, _ = self._drafter(llm)

        result = asyncio.run(drafter.complete_structured("s", "u", ModelSpec("openai", "gpt-4o"), Queries, run_name="q"))

        assert isinstance(result, Queries)
        runner.with_retry.assert_not_called()
