"""
Pytest fixtures for API endpoint tests.

This module configures the testing environment for API tests:
1. Provides a TestClient for the FastAPI app (lifespan not started, so no
   Supabase connection is attempted)
2. Injects an in-memory HandlerContext through dependency overrides
3. Ensures proper cleanup of app state between tests
"""

import pytest
from fastapi.testclient import TestClient

from atlas.api.dependencies.context import get_handler_context
from atlas.api.main import app
from tests.fixtures.helpers import make_context, plan_reply
from tests.fixtures.mocks.llm import MockCompletionService

# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(scope="module")
def test_client():
    """Create a test client for the FastAPI app.

    This fixture is module-scoped to avoid re-creating the client
    for every test, which improves performance.
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def cleanup_dependency_overrides():
    """Clean up dependency overrides after each test.

    This ensures tests don't leak mock configurations to other tests.
    """
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def completion():
    return MockCompletionService(plan_reply())


@pytest.fixture
def api_context(seeded_client, completion):
    """Handler context over the in-memory store, installed on the app."""
    ctx = make_context(seeded_client, completion)
    app.dependency_overrides[get_handler_context] = lambda: ctx
    return ctx
