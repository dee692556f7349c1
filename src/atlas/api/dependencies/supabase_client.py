"""Supabase client dependency for FastAPI.

Provides the async PostgREST client every repository shares. The client is
created once at startup (with retry on connection failures) and handed to
handlers through ``get_handler_context``.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

from tenacity import (
    before_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Global client reference
_supabase_client: Optional[Any] = None


def _credentials() -> tuple:
    url = os.environ.get("SUPABASE_URL", "")
    key = os.environ.get("SUPABASE_KEY", "") or os.environ.get("SUPABASE_ANON_KEY", "")
    # Service key bypasses row-level security for ledger writes
    service_key = os.environ.get("SUPABASE_SERVICE_KEY", "")
    return url, service_key or key


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
    before=before_log(logger, logging.WARNING),
    reraise=True,
)
async def init_supabase() -> Optional[Any]:
    """
    Initialize the async Supabase client.

    Returns:
        Supabase client instance or None if not configured

    Raises:
        ConnectionError: If Supabase connection fails with valid credentials
    """
    global _supabase_client

    if _supabase_client is not None:
        return _supabase_client

    url, key = _credentials()
    if not url or not key:
        logger.warning("Supabase credentials not configured - store features unavailable")
        return None

    logger.info(f"Initializing Supabase connection to {url[:50]}...")

    from supabase import acreate_client

    try:
        _supabase_client = await acreate_client(url, key)
    except Exception as e:
        _supabase_client = None
        logger.error(f"Failed to connect to Supabase: {e}")
        raise ConnectionError(f"Supabase connection failed: {e}") from e

    logger.info("Supabase client initialized successfully")
    return _supabase_client


def get_supabase() -> Optional[Any]:
    """
    Get the Supabase client instance.

    Returns:
        Supabase client or None if unavailable
    """
    return _supabase_client


def set_supabase(client: Optional[Any]) -> None:
    """Install a client directly (used by tests and embedding applications)."""
    global _supabase_client
    _supabase_client = client


async def close_supabase() -> None:
    """Drop the Supabase client."""
    global _supabase_client

    if _supabase_client is not None:
        logger.info("Closing Supabase connection")
        _supabase_client = None
        logger.info("Supabase connection closed")


async def supabase_health_check() -> Dict[str, Any]:
    """
    Check Supabase health with a one-row read of the agent catalog.

    Returns:
        Dict with status and connection info
    """
    client = get_supabase()
    if client is None:
        return {"status": "unavailable", "error": "Supabase not configured"}

    start = time.perf_counter()
    try:
        await client.table("sonic_agents").select("id").limit(1).execute()
    except Exception as e:
        logger.warning(f"Supabase health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}

    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        "connected": True,
    }
