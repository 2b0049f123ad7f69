"""Observability integration using Langfuse.

This module provides automatic LLM tracing via Langfuse's callback handler.
Every chat model built through these helpers carries the handler, so all
planner, writer and grader calls are traced when Langfuse is configured.

Configuration:
    Set these environment variables in your .env file:
    - LANGFUSE_PUBLIC_KEY: Your Langfuse public key (required)
    - LANGFUSE_SECRET_KEY: Your Langfuse secret key (required)
    - LANGFUSE_HOST: Langfuse server URL (required, e.g., http://localhost:3000)
    - LANGFUSE_ENABLED: Set to "false" to explicitly disable (optional, default: true)

Usage:
    from deep_report.integrations.observability import get_observed_anthropic_llm

    llm = get_observed_anthropic_llm(model="claude-3-5-sonnet-latest", name="section-writer")
    # All calls to this LLM will be traced in Langfuse (if configured)
"""

from __future__ import annotations

import logging
import os
from typing import Any

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

# Lazy imports for the optional providers
_ChatGoogleGenerativeAI: Any | None = None
_ChatAnthropic: Any | None = None

logger = logging.getLogger(__name__)


class _QuietOtelHandler(logging.Handler):
    """Handler that logs one line per OTEL export error instead of a stack trace."""

    def emit(self, record: logging.LogRecord) -> None:
        if os.getenv("LANGFUSE_ENABLED", "true").lower() == "false":
            return
        msg = str(record.msg).lower() if record.msg else ""
        exc_text = str(record.exc_info[1]).lower() if record.exc_info and record.exc_info[1] else ""
        if "export" in msg or "connection" in exc_text or "refused" in exc_text:
            logger.warning("Langfuse tracing failed (connection refused)")


_quiet_handler = _QuietOtelHandler()
for _logger_name in (
    "opentelemetry",
    "opentelemetry.exporter",
    "opentelemetry.exporter.otlp",
    "opentelemetry.exporter.otlp.proto.http",
    "opentelemetry.exporter.otlp.proto.http.trace_exporter",
    "opentelemetry.sdk",
    "opentelemetry.sdk._shared_internal",
):
    _otel_logger = logging.getLogger(_logger_name)
    _otel_logger.handlers = [_quiet_handler]
    _otel_logger.propagate = False

_langfuse_handler: BaseCallbackHandler | None = None
_langfuse_init_attempted: bool = False


def _get_langfuse_handler() -> BaseCallbackHandler | None:
    """Get or create the Langfuse callback handler.

    Requires LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY, and LANGFUSE_HOST.
    If any is missing, observability is disabled with a single warning.
    Set LANGFUSE_ENABLED=false to disable tracing entirely (no warning).

    Returns None if Langfuse is disabled, not configured, or unavailable.
    """
    global _langfuse_handler, _langfuse_init_attempted

    if os.getenv("LANGFUSE_ENABLED", "true").lower() == "false":
        return None

    if _langfuse_handler is not None:
        return _langfuse_handler

    # Only attempt initialization once to avoid repeated warnings
    if _langfuse_init_attempted:
        return None
    _langfuse_init_attempted = True

    missing_vars = [
        var for var in ("LANGFUSE_PUBLIC_KEY", "LANGFUSE_SECRET_KEY", "LANGFUSE_HOST") if not os.getenv(var)
    ]
    if missing_vars:
        logger.warning(
            "Langfuse observability disabled: missing environment variables: %s.",
            ", ".join(missing_vars),
        )
        return None

    try:
        from langfuse.langchain import CallbackHandler

        _langfuse_handler = CallbackHandler()
        logger.info("Langfuse observability enabled (host: %s)", os.getenv("LANGFUSE_HOST"))
        return _langfuse_handler
    except Exception as e:
        logger.warning("Langfuse observability disabled: initialization failed: %s", e)
        return None


def get_langfuse_callbacks() -> list[BaseCallbackHandler]:
    """Get Langfuse callbacks for manual injection into LangChain calls.

    Returns:
        List containing the Langfuse handler if configured, empty list otherwise.
    """
    handler = _get_langfuse_handler()
    return [handler] if handler else []


def _with_tracing(llm_kwargs: dict[str, Any], name: str | None) -> dict[str, Any]:
    callbacks = get_langfuse_callbacks()
    if callbacks:
        llm_kwargs["callbacks"] = callbacks
    if name:
        llm_kwargs["name"] = name
    return llm_kwargs


def get_observed_llm(
    model: str,
    base_url: str | None = None,
    api_key: str | None = None,
    temperature: float | None = 0,
    name: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a ChatOpenAI instance with Langfuse observability built-in.

    Args:
        model: Model name/identifier.
        base_url: API endpoint URL. Defaults to OpenAI if not set.
        api_key: API key. Falls back to OPENAI_API_KEY env var.
        temperature: Sampling temperature. None leaves the provider default.
        name: Name to assign to the LLM for tracing identification.
        **kwargs: Additional arguments passed to ChatOpenAI.

    Returns:
        Configured ChatOpenAI with observability callbacks attached.
    """
    llm_kwargs: dict[str, Any] = {"model": model, **kwargs}
    if temperature is not None:
        llm_kwargs["temperature"] = temperature
    if base_url:
        llm_kwargs["base_url"] = base_url
    if api_key:
        llm_kwargs["api_key"] = api_key
    return ChatOpenAI(**_with_tracing(llm_kwargs, name))


def get_observed_anthropic_llm(
    model: str,
    api_key: str | None = None,
    temperature: float | None = 0,
    name: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a ChatAnthropic instance with Langfuse observability built-in.

    Args:
        model: Claude model name, e.g. "claude-3-5-sonnet-latest".
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
        temperature: Sampling temperature. Must be None when extended thinking is on.
        name: Name to assign to the LLM for tracing identification.
        **kwargs: Additional arguments passed to ChatAnthropic (max_tokens, thinking, ...).

    Returns:
        Configured ChatAnthropic with observability callbacks attached.
    """
    global _ChatAnthropic

    if _ChatAnthropic is None:
        try:
            from langchain_anthropic import ChatAnthropic
            _ChatAnthropic = ChatAnthropic
        except ImportError as e:
            raise ImportError(
                "langchain-anthropic not installed. Install with:\n"
                "  pip install langchain-anthropic"
            ) from e

    llm_kwargs: dict[str, Any] = {"model": model, **kwargs}
    if temperature is not None:
        llm_kwargs["temperature"] = temperature
    if api_key:
        llm_kwargs["api_key"] = api_key
    return _ChatAnthropic(**_with_tracing(llm_kwargs, name))


def get_observed_gemini_llm(
    model: str | None = None,
    api_key: str | None = None,
    temperature: float | None = 0,
    name: str | None = None,
    **kwargs: Any,
) -> BaseChatModel:
    """Create a Google Gemini instance with Langfuse observability built-in.

    Args:
        model: Model name/identifier. Falls back to GEMINI_MODEL env var.
        api_key: Google API key. Falls back to GOOGLE_API_KEY, then GEMINI_API_KEY.
        temperature: Sampling temperature.
        name: Name to assign to the LLM for tracing identification.
        **kwargs: Additional arguments passed to ChatGoogleGenerativeAI.

    Returns:
        Configured ChatGoogleGenerativeAI with observability callbacks attached.

    Raises:
        ValueError: No Gemini API key is available.
    """
    global _ChatGoogleGenerativeAI

    if _ChatGoogleGenerativeAI is None:
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
            _ChatGoogleGenerativeAI = ChatGoogleGenerativeAI
        except ImportError as e:
            raise ImportError(
                "langchain-google-genai not installed. Install with:\n"
                "  pip install langchain-google-genai"
            ) from e

    model_name = (model or os.getenv("GEMINI_MODEL", "gemini-2.0-flash")).strip()
    gemini_api_key = (api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or "").strip()
    if not gemini_api_key:
        raise ValueError(
            "Gemini API key not found. Set GOOGLE_API_KEY or GEMINI_API_KEY, or pass api_key=..."
        )

    llm_kwargs: dict[str, Any] = {"model": model_name, "api_key": gemini_api_key, **kwargs}
    if temperature is not None:
        llm_kwargs["temperature"] = temperature
    return _ChatGoogleGenerativeAI(**_with_tracing(llm_kwargs, name))


def is_observability_enabled() -> bool:
    """Check if Langfuse observability is configured and available."""
    return _get_langfuse_handler() is not None
