"""
Atlas Orchestration - FastAPI Application
=========================================

Components:
-----------
- Health checks
- Atlas orchestrator RPC router
- Supabase client lifecycle
- AtlasError envelope for every failure
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from atlas import __version__
from atlas.api.dependencies.supabase_client import (
    close_supabase,
    init_supabase,
    supabase_health_check,
)
from atlas.api.errors import AtlasError, ValidationError, error_response
from atlas.api.routes.orchestrator import router as orchestrator_router
from atlas.config.loader import load_routing_config
from atlas.utils.logging_config import clear_request_context, configure_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LIFESPAN CONTEXT MANAGER
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    configure_logging()

    logger.info("=" * 60)
    logger.info("Atlas Orchestration - Starting")
    logger.info("=" * 60)
    logger.info("Version: %s", __version__)
    logger.info("Timestamp: %s", datetime.now(timezone.utc).isoformat())

    load_routing_config()

    try:
        await init_supabase()
    except ConnectionError as e:
        logger.error(f"Supabase unavailable at startup, store actions will fail: {e}")

    logger.info("API server ready to accept connections")

    yield  # Application runs here

    logger.info("Atlas Orchestration - Shutting down")
    await close_supabase()
    logger.info("Shutdown complete")


# =============================================================================
# FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Atlas Orchestration",
    description="Three-tier agent routing with a learning ledger",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# =============================================================================
# MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reset_log_context(request: Request, call_next):
    """Start every request with empty logging context."""
    clear_request_context()
    return await call_next(request)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================


@app.get("/", tags=["Root"])
async def root() -> Dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "service": "Atlas Orchestration",
        "version": __version__,
        "status": "online",
        "docs": "/api/docs",
        "health": "/health",
    }


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for container orchestration."""
    store = await supabase_health_check()
    return {
        "status": "healthy" if store.get("status") == "healthy" else "degraded",
        "service": "atlas-orchestration",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {"api": "operational", "supabase": store.get("status", "unknown")},
    }


@app.get("/healthz", tags=["Health"])
async def healthz() -> Dict[str, str]:
    """Kubernetes-style liveness check."""
    return {"status": "ok"}


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(orchestrator_router)


# =============================================================================
# ERROR HANDLERS
# =============================================================================


@app.exception_handler(AtlasError)
async def atlas_error_handler(request: Request, exc: AtlasError) -> JSONResponse:
    """Render any AtlasError with its status code and envelope."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(
        "Request validation failed",
        schema_errors=[
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ],
    )
    return JSONResponse(status_code=400, content=error_response(error))


# =============================================================================
# DEVELOPMENT UTILITIES
# =============================================================================


def main() -> None:
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    uvicorn.run("atlas.api.main:app", host="0.0.0.0", port=8000, log_level="info")



if __name__ == "__main__":
    main()
