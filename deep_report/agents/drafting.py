"""Drafting Service: text and structured generation over LangChain chat models.

Workflow steps never talk to chat models directly. They call a `Drafter`,
which resolves the model through `DefaultLLMFactory`, sends a system/user
message pair and returns either plain text or a validated Pydantic object.
Calls are not retried unless a step opts in through ``attempts``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, cast

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel

from deep_report.factory import DefaultLLMFactory

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ModelSpec:
    """Provider and model name of one Drafting Service call."""

    provider: str
    model: str


def extract_text(message: Any) -> str:
    """Return the drafted text of a chat model response.

    Accepts a message or its raw ``content``. String content is returned
    as-is; block lists (Anthropic thinking output, Gemini parts) keep only
    their text blocks, joined by newlines.
    """
    content = message.content if isinstance(message, BaseMessage) else message
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = []
        for block in content:
            if isinstance(block, dict):
                if block.get("type") == "text" and "text" in block:
                    text_parts.append(str(block["text"]))
                elif "type" not in block and "text" in block:
                    text_parts.append(str(block["text"]))
            elif isinstance(block, str):
                text_parts.append(block)
        return "\n".join(text_parts)

    return str(content)


class DraftingService(Protocol):
    """What workflow steps need from a drafter. Tests substitute fakes."""

    async def complete(self, system_prompt: str, user_prompt: str, model: ModelSpec, *, run_name: str) -> str: ...

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        model: ModelSpec,
        schema: type[ModelT],
        *,
        run_name: str,
        attempts: int = 1,
    ) -> ModelT: ...


class Drafter:
    """Default `DraftingService` backed by `DefaultLLMFactory` chat models."""

    def __init__(self, factory: DefaultLLMFactory | None = None):
        self.factory = factory or DefaultLLMFactory()

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> list[BaseMessage]:
        return [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

    async def complete(self, system_prompt: str, user_prompt: str, model: ModelSpec, *, run_name: str) -> str:
        """Generate free text.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The request itself.
            model: Provider and model to use.
            run_name: Trace name of the call.

        Returns:
            The drafted text (see `extract_text`).
        """
        llm = self.factory.get_llm(run_name, model.provider, model.model)
        logger.debug("Drafting with %s/%s (%s)", model.provider, model.model, run_name)
        response = await llm.ainvoke(self._messages(system_prompt, user_prompt))
        return extract_text(response)

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        model: ModelSpec,
        schema: type[ModelT],
        *,
        run_name: str,
        attempts: int = 1,
    ) -> ModelT:
        """Generate an object decoded into `schema`.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The request itself.
            model: Provider and model to use.
            schema: Pydantic model the output is validated against.
            run_name: Trace name of the call.
            attempts: Total tries before the last failure propagates.

        Returns:
            A validated `schema` instance.
        """
        llm = self.factory.get_llm(run_name, model.provider, model.model)
        runner: Any = llm.with_structured_output(schema)
        if attempts > 1:
            runner = runner.with_retry(stop_after_attempt=attempts)
        logger.debug("Structured drafting of %s with %s/%s (%s)", schema.__name__, model.provider, model.model, run_name)
        result = await runner.ainvoke(self._messages(system_prompt, user_prompt))
        if isinstance(result, schema):
            return result
        return cast(ModelT, schema.model_validate(result))
