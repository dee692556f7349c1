"""Completion-service mocks for Atlas tests.

- MockCompletionService: returns a canned reply (or raises) and records the
  messages it was given
- MockChatModel: minimal LangChain-style chat model for LangChainCompletionService

Usage:
    completion = MockCompletionService(reply=json.dumps(plan))
    ...
    assert completion.call_count == 1
    assert "PRE-RANKED SPECIALISTS" in completion.last_prompt
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import pytest

from atlas.orchestrator.completion import ChatMessage


class MockCompletionService:
    """CompletionService returning a fixed reply."""

    def __init__(self, reply: str = "{}", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[List[ChatMessage]] = []

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_prompt(self) -> str:
        """Content of the last user message sent."""
        if not self.calls:
            return ""
        return next((m.content for m in reversed(self.calls[-1]) if m.role == "user"), "")


class MockChatResponse:
    def __init__(self, content: Any):
        self.content = content


class MockChatModel:
    """Stands in for a LangChain chat model's ``ainvoke``."""

    def __init__(self, content: Any = "ok", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.invocations: List[Any] = []

    async def ainvoke(self, messages: Any) -> MockChatResponse:
        self.invocations.append(messages)
        if self.error is not None:
            raise self.error
        return MockChatResponse(self.content)


@pytest.fixture
def mock_completion() -> MockCompletionService:
    return MockCompletionService()
