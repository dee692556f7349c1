"""Mock classes for external services.

This module provides consistent mock implementations for:
- The completion service and LangChain chat models
- The async Supabase client (in-memory tables)
"""

from tests.fixtures.mocks.databases import (
    MockAPIError,
    MockSupabaseClient,
    MockSupabaseQuery,
    mock_supabase_client,
)
from tests.fixtures.mocks.llm import (
    MockChatModel,
    MockCompletionService,
    mock_completion,
)

__all__ = [
    "MockAPIError",
    "MockChatModel",
    "MockCompletionService",
    "MockSupabaseClient",
    "MockSupabaseQuery",
    "mock_completion",
    "mock_supabase_client",
]
