"""Centralized fixture library for Atlas orchestration tests.

This module provides reusable fixtures, mocks, and utilities used across
the test suite.

Structure:
- mocks/: Mock classes for external services (completion service, Supabase)
- helpers.py: Seed rows, canned model replies and handler context builders

Usage:
    # In conftest.py files:
    from tests.fixtures.mocks.llm import MockCompletionService
    from tests.fixtures.mocks.databases import MockSupabaseClient
    from tests.fixtures.helpers import make_context, plan_reply, score_row
"""

# Lazy imports to avoid circular dependencies
# Import from submodules as needed in test files

__all__ = [
    # Completion Mocks
    "MockChatModel",
    "MockCompletionService",
    # Database Mocks
    "MockSupabaseClient",
    "MockSupabaseQuery",
    # Helpers
    "agent_row",
    "default_agents",
    "make_context",
    "plan_reply",
    "score_row",
]
