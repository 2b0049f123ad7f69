"""LLM Factory for centralized model creation and configuration."""

from __future__ import annotations

from typing import Any, Callable

from langchain_core.language_models import BaseChatModel

from deep_report.configuration import (
    EXTENDED_THINKING_BUDGET_TOKENS,
    EXTENDED_THINKING_MAX_TOKENS,
    EXTENDED_THINKING_MODEL,
    ConfigurationError,
    ModelProvider,
)
from deep_report.integrations.observability import (
    get_observed_anthropic_llm,
    get_observed_gemini_llm,
    get_observed_llm,
)

_BUILDERS: dict[ModelProvider, Callable[..., BaseChatModel]] = {
    ModelProvider.ANTHROPIC: get_observed_anthropic_llm,
    ModelProvider.OPENAI: get_observed_llm,
    ModelProvider.GOOGLE_GENAI: get_observed_gemini_llm,
}


def extended_thinking_kwargs(model: str) -> dict[str, Any]:
    """Extra model arguments for the extended-thinking model, empty for any other model."""
    if model != EXTENDED_THINKING_MODEL:
        return {}
    return {
        "max_tokens": EXTENDED_THINKING_MAX_TOKENS,
        "thinking": {"type": "enabled", "budget_tokens": EXTENDED_THINKING_BUDGET_TOKENS},
    }


class DefaultLLMFactory:
    """Factory for creating configured LLM instances with observability."""

    def __init__(self, agent_config: dict[str, dict[str, Any]] | None = None):
        """Initialize the factory.

        Args:
            agent_config: Optional configuration overrides for specific nodes.
                          Map from node name to kwargs dict (e.g. {"section-grader": {"max_tokens": 2048}}).
        """
        self.agent_config = agent_config or {}
        self._cache: dict[tuple[str, str, str, Any], BaseChatModel] = {}

    def get_llm(
        self,
        name: str,
        provider: str,
        model: str,
        temperature: float | None = 0,
        **kwargs: Any,
    ) -> BaseChatModel:
        """Get an LLM instance with the specified configuration.

        Models are cached per (name, provider, model, temperature) so repeated
        calls from sibling branches share a client.

        Args:
            name: The name for the node (used for trace naming).
            provider: One of 'anthropic', 'openai', 'google_genai'.
            model: Specific model name to use.
            temperature: Sampling temperature. Ignored for the extended-thinking model.
            **kwargs: Additional model arguments.

        Returns:
            Configured BaseChatModel.

        Raises:
            ConfigurationError: Unknown provider.
        """
        try:
            resolved_provider = ModelProvider(provider)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported model provider: {provider}") from exc

        thinking = extended_thinking_kwargs(model)
        if thinking:
            # Anthropic rejects a temperature alongside a thinking budget.
            temperature = None

        combined_kwargs = {**thinking, **kwargs, **self.agent_config.get(name, {})}
        cache_key = (name, resolved_provider.value, model, temperature)
        if not combined_kwargs and cache_key in self._cache:
            return self._cache[cache_key]

        llm = _BUILDERS[resolved_provider](
            model=model,
            temperature=temperature,
            name=name,
            **combined_kwargs,
        )
        if not combined_kwargs:
            self._cache[cache_key] = llm
        return llm
