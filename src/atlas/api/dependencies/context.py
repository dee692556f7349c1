"""Handler context dependency.

Builds a fresh ``HandlerContext`` per request around the shared Supabase
client and completion service. Override ``get_handler_context`` in tests to
inject fakes.
"""

from typing import Optional

from atlas.api.dependencies.supabase_client import get_supabase
from atlas.config.loader import load_routing_config
from atlas.orchestrator.completion import CompletionService, LangChainCompletionService
from atlas.orchestrator.engine import HandlerContext

_completion_service: Optional[CompletionService] = None


def get_completion_service() -> CompletionService:
    """Shared completion service; the chat model is built on first use."""
    global _completion_service
    if _completion_service is None:
        _completion_service = LangChainCompletionService()
    return _completion_service


def get_handler_context() -> HandlerContext:
    """FastAPI dependency returning the per-request handler context."""
    return HandlerContext.from_client(
        get_supabase(),
        completion=get_completion_service(),
        config=load_routing_config(),
    )
