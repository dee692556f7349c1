"""Completion service boundary for the reasoning tier.

The engine only needs "role-tagged messages in, free text out". The
``CompletionService`` protocol captures that; ``LangChainCompletionService``
implements it over a LangChain chat model from ``atlas.utils.llm_factory``.

Provider failures are re-raised as ``CompletionServiceError`` carrying the
upstream HTTP status, so a 429 from the provider reaches the caller as 429.
"""

import logging
from typing import Any, List, Literal, Optional, Protocol, Sequence, runtime_checkable

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel

from atlas.api.errors import CompletionServiceError

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


@runtime_checkable
class CompletionService(Protocol):
    """Chat-style text completion."""

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """Return the model's free-text reply.

        Raises:
            CompletionServiceError: On network, timeout or non-success status
        """
        ...


def upstream_status(exc: BaseException) -> Optional[int]:
    """Best-effort extraction of an HTTP status from a provider exception."""
    for candidate in (exc, getattr(exc, "response", None)):
        status = getattr(candidate, "status_code", None)
        if isinstance(status, int):
            return status
    return None


def _to_langchain(messages: Sequence[ChatMessage]) -> List[BaseMessage]:
    mapping = {"system": SystemMessage, "user": HumanMessage, "assistant": AIMessage}
    return [mapping[m.role](content=m.content) for m in messages]


def _message_text(content: Any) -> str:
    # Anthropic models may return a list of content blocks
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content or "")


class LangChainCompletionService:
    """CompletionService backed by a LangChain chat model."""

    def __init__(self, llm: Any = None, provider: Optional[str] = None):
        """
        Args:
            llm: Pre-built chat model; built lazily from llm_factory when None
            provider: Provider override passed to the factory
        """
        self._llm = llm
        self._provider = provider

    @property
    def llm(self) -> Any:
        if self._llm is None:
            from atlas.utils.llm_factory import get_orchestrator_llm

            self._llm = get_orchestrator_llm(provider=self._provider)
        return self._llm

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        try:
            llm = self.llm
        except (ImportError, ValueError) as e:
            raise CompletionServiceError(str(e), upstream_status=503, original_error=e) from e

        try:
            response = await llm.ainvoke(_to_langchain(messages))
        except Exception as e:
            status = upstream_status(e)
            logger.error(f"Completion service call failed (status={status}): {e}")
            raise CompletionServiceError(
                str(e) or type(e).__name__,
                upstream_status=status,
                provider=self._provider,
                original_error=e,
            ) from e

        return _message_text(getattr(response, "content", response))
