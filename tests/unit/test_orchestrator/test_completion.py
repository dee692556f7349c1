"""Unit tests for the LangChain-backed completion service."""

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from atlas.api.errors import CompletionServiceError
from atlas.orchestrator.completion import (
    ChatMessage,
    CompletionService,
    LangChainCompletionService,
    upstream_status,
)
from tests.fixtures.mocks.llm import MockChatModel, MockCompletionService

MESSAGES = [
    ChatMessage(role="system", content="You route requests."),
    ChatMessage(role="user", content="Draft a reply"),
]


class RateLimitError(Exception):
    status_code = 429


class ProviderHTTPError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.response = MagicMock(status_code=status)


@pytest.mark.unit
class TestUpstreamStatus:
    def test_reads_status_code_attribute(self):
        assert upstream_status(RateLimitError("slow down")) == 429

    def test_reads_response_status(self):
        assert upstream_status(ProviderHTTPError("overloaded", 529)) == 529

    def test_none_for_network_errors(self):
        assert upstream_status(ConnectionError("reset")) is None


@pytest.mark.unit
class TestLangChainCompletionService:
    def test_satisfies_protocol(self):
        assert isinstance(LangChainCompletionService(llm=MockChatModel()), CompletionService)
        assert isinstance(MockCompletionService(), CompletionService)

    @pytest.mark.asyncio
    async def test_converts_messages_and_returns_text(self):
        model = MockChatModel(content='{"recommended_agents": []}')
        service = LangChainCompletionService(llm=model)

        reply = await service.complete(MESSAGES)

        assert reply == '{"recommended_agents": []}'
        sent = model.invocations[0]
        assert isinstance(sent[0], SystemMessage)
        assert isinstance(sent[1], HumanMessage)
        assert sent[1].content == "Draft a reply"

    @pytest.mark.asyncio
    async def test_joins_content_blocks(self):
        model = MockChatModel(
            content=[{"type": "text", "text": "{\"a\": "}, {"type": "tool_use"}, {"type": "text", "text": "1}"}]
        )

        reply = await LangChainCompletionService(llm=model).complete(MESSAGES)

        assert reply == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_rate_limit_status_passes_through(self):
        service = LangChainCompletionService(
            llm=MockChatModel(error=RateLimitError("rate limited")), provider="anthropic"
        )

        with pytest.raises(CompletionServiceError) as exc_info:
            await service.complete(MESSAGES)

        error = exc_info.value
        assert error.status_code == 429
        assert error.details["upstream_status"] == 429
        assert error.details["provider"] == "anthropic"

    @pytest.mark.asyncio
    async def test_network_failure_is_bad_gateway(self):
        service = LangChainCompletionService(llm=MockChatModel(error=ConnectionError("reset")))

        with pytest.raises(CompletionServiceError) as exc_info:
            await service.complete(MESSAGES)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_credentials_is_unavailable(self):
        service = LangChainCompletionService()

        with patch(
            "atlas.utils.llm_factory.get_orchestrator_llm",
            side_effect=ValueError("OPENAI_API_KEY environment variable is not set"),
        ):
            with pytest.raises(CompletionServiceError) as exc_info:
                await service.complete(MESSAGES)

        assert exc_info.value.status_code == 503
