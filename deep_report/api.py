"""Inbound request handling for the research service.

A request either starts a report (`topic` + `sessionId`) or resumes a
suspended one (`feedback` non-empty). Failures are mapped to an HTTP-style
status so callers can tell "try again later" from "fatal".
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import psycopg
from anthropic import APIError as AnthropicAPIError
from openai import APIError as OpenAIAPIError
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from deep_report.agents.report import Interrupted, PlanRevisionLimitError, ReportWriter, ResumeError
from deep_report.configuration import ConfigurationError
from deep_report.integrations.checkpoint import (
    UNAVAILABLE_MESSAGE,
    CheckpointStoreUnavailableError,
    setup_checkpointer,
)
from deep_report.tools.search import SearchError, UnsupportedSearchAPIError

logger = logging.getLogger(__name__)


class ResearchRequest(BaseModel):
    """Validated inbound payload."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    topic: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1, validation_alias=AliasChoices("sessionId", "session_id"))
    feedback: str | None = Field(None, validation_alias=AliasChoices("feedback", "feedBack"))

    @property
    def is_resume(self) -> bool:
        return bool(self.feedback)


class InvalidRequestError(ValueError):
    """The inbound payload failed validation."""


class ResearchServiceError(Exception):
    """Structured error surfaced to the HTTP caller."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.status_code in (502, 503)

    def to_dict(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "message": self.message}


_PROVIDER_ERRORS = (SearchError, ValidationError, AnthropicAPIError, OpenAIAPIError, ConnectionError, TimeoutError)


def root_cause(exc: BaseException) -> BaseException:
    """Follow explicit `raise ... from` links down to the first failure."""
    while exc.__cause__ is not None:
        exc = exc.__cause__
    return exc


def classify_error(exc: BaseException) -> int:
    """Map an exception (or the failure it wraps) to a status code.

    400 invalid input, 409 nothing to resume, 422 unsupported configuration,
    503 checkpoint store unreachable, 502 provider failure, 500 otherwise.
    """
    cause = root_cause(exc)
    if isinstance(cause, InvalidRequestError):
        return 400
    if isinstance(cause, ResumeError):
        return 409
    if isinstance(cause, (UnsupportedSearchAPIError, ConfigurationError, PlanRevisionLimitError)):
        return 422
    if isinstance(cause, (CheckpointStoreUnavailableError, psycopg.OperationalError)):
        return 503
    if isinstance(cause, _PROVIDER_ERRORS):
        return 502
    return 500


async def handle_research_request(
    payload: Mapping[str, Any],
    writer: ReportWriter,
    configurable: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate `payload`, run one workflow invocation and shape the result.

    Returns:
        ``{"status": "interrupted", "prompt": ...}`` while awaiting plan review,
        or ``{"status": "completed", "report": ..., "state": ...}``.

    Raises:
        ResearchServiceError: Invalid input or a classified workflow failure.
    """
    try:
        request = ResearchRequest.model_validate(payload)
    except ValidationError as exc:
        invalid = InvalidRequestError(f"Invalid request: {exc.errors(include_url=False)}")
        raise ResearchServiceError(classify_error(invalid), str(invalid)) from exc

    try:
        await setup_checkpointer(writer.checkpointer)
        if request.is_resume:
            logger.info("Resuming session %s", request.session_id)
            result = await writer.arun(request.session_id, feedback=request.feedback, configurable=configurable)
        else:
            logger.info("Starting report for session %s: %s", request.session_id, request.topic)
            result = await writer.arun(request.session_id, topic=request.topic, configurable=configurable)
    except Exception as exc:
        status = classify_error(exc)
        logger.error("Research request for session %s failed (%d): %s", request.session_id, status, exc)
        if status == 503:
            message = UNAVAILABLE_MESSAGE
        elif status == 502:
            message = "Research workflow failed. Please try again later."
        elif status == 500:
            message = "Internal error"
        else:
            message = str(root_cause(exc))
        raise ResearchServiceError(status, message) from exc

    if isinstance(result, Interrupted):
        return {"status": "interrupted", "prompt": result.prompt}
    return {"status": "completed", "report": result.get("final_report", ""), "state": result}
