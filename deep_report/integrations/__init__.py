"""External service integrations.

This package provides thin wrappers around external services
(observability and checkpoint persistence).
"""

from deep_report.integrations.checkpoint import (
    CheckpointStoreError,
    CheckpointStoreUnavailableError,
    open_checkpointer,
    setup_checkpointer,
)
from deep_report.integrations.observability import (
    get_langfuse_callbacks,
    get_observed_anthropic_llm,
    get_observed_gemini_llm,
    get_observed_llm,
    is_observability_enabled,
)

__all__ = [
    # Checkpoints
    "CheckpointStoreError",
    "CheckpointStoreUnavailableError",
    "open_checkpointer",
    "setup_checkpointer",
    # Observability
    "get_langfuse_callbacks",
    "get_observed_anthropic_llm",
    "get_observed_gemini_llm",
    "get_observed_llm",
    "is_observability_enabled",
]
