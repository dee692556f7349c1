"""
Atlas Orchestrator RPC API
==========================

Single generic RPC endpoint for the routing engine.

Endpoints:
- POST /atlas/orchestrator: Run one action (orchestrate, record_performance,
  update_relationship, get_agent_memory, get_agent_profile, get_routing_stats)

The body is decoded into a typed request variant before any store access; a
malformed body is a 400. Best-effort learning writes returned by a handler
run as background tasks after the response is sent.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from atlas.api.dependencies.context import get_handler_context
from atlas.api.errors import AtlasError, ValidationError, wrap_exception
from atlas.models.requests import parse_rpc_request
from atlas.orchestrator.engine import HandlerContext
from atlas.orchestrator.handlers import dispatch
from atlas.utils.logging_config import set_request_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/atlas", tags=["Atlas Orchestrator"])


def _schema_errors(exc: PydanticValidationError) -> list:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON", original_error=e) from e


@router.post("/orchestrator")
async def orchestrator_rpc(
    request: Request,
    background_tasks: BackgroundTasks,
    ctx: HandlerContext = Depends(get_handler_context),
) -> JSONResponse:
    """
    Handle one RPC action.

    Returns:
        The action's response envelope; errors use the AtlasError envelope

    Raises:
        AtlasError: Translated to its status code by the app's exception handler
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    body = await _read_body(request)

    action = body.get("action") if isinstance(body, dict) else None
    set_request_context(request_id=request_id, action=action)

    try:
        rpc = parse_rpc_request(body)
    except PydanticValidationError as e:
        errors = _schema_errors(e)
        logger.info(f"Rejected {action or 'untagged'} request: {len(errors)} validation errors")
        raise ValidationError(
            f"Invalid request for action '{action}'" if action else "Missing or unknown action",
            field=errors[0]["field"] if errors else None,
            schema_errors=errors,
        ) from e

    set_request_context(
        user_id=getattr(rpc, "user_id", None),
        session_id=getattr(rpc, "session_id", None),
    )

    try:
        result = await dispatch(ctx, rpc)
    except AtlasError:
        raise
    except Exception as e:
        logger.error(f"Unhandled error in {rpc.action}: {e}", exc_info=True)
        raise wrap_exception(e, operation=rpc.action) from e

    for write in result.deferred:
        background_tasks.add_task(write.run)

    headers: Dict[str, str] = {"X-Request-ID": request_id}
    return JSONResponse(status_code=result.status_code, content=result.payload(), headers=headers)
