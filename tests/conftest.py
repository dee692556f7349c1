"""Root conftest.py - Global pytest fixtures.

This module provides:
1. .env loading before any test module is collected
2. A clean logging context and routing-config cache per test
3. Shared fixtures for the in-memory store and completion service
"""

from __future__ import annotations

import pytest
from dotenv import load_dotenv

# =============================================================================
# LOAD ENVIRONMENT VARIABLES from .env file IMMEDIATELY
# =============================================================================
load_dotenv(override=False)

from atlas.config import loader as config_loader  # noqa: E402
from atlas.utils.logging_config import clear_request_context  # noqa: E402
from tests.fixtures.helpers import default_agents, make_context  # noqa: E402
from tests.fixtures.mocks.databases import MockSupabaseClient, mock_supabase_client  # noqa: E402,F401
from tests.fixtures.mocks.llm import MockCompletionService, mock_completion  # noqa: E402,F401


def pytest_configure(config):
    """Run load_dotenv again at configure time for safety."""
    load_dotenv(override=False)


@pytest.fixture(autouse=True)
def reset_global_state():
    """Isolate request context and the cached routing config between tests."""
    clear_request_context()
    config_loader._cached_config = None
    yield
    clear_request_context()
    config_loader._cached_config = None


@pytest.fixture
def seeded_client() -> MockSupabaseClient:
    """In-memory store with the default agent catalog."""
    client = MockSupabaseClient()
    client.seed("sonic_agents", default_agents())
    return client


@pytest.fixture
def handler_context(seeded_client):
    return make_context(seeded_client)
