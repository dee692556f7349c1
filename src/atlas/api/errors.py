"""
Atlas Orchestration - API Error Handling
========================================

Typed error hierarchy for the orchestrator RPC surface.

Status code mapping:
- ValidationError          400  missing or malformed request fields, raised
                                before any store access
- NotFoundError            404  unknown agent for profile lookups
- DatabaseError            500  relational store read/write failures
- CompletionServiceError   pass-through of the upstream model status so
                                callers can tell rate limiting from outage
- OrchestratorError        500  internal routing failures

Parse failures of the model output are NOT errors; they degrade to a null
plan in the reasoning tier. Best-effort learning writes never raise out of
the request path.
"""

import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


class ErrorCategory(str, Enum):
    """Categories of errors for classification and routing."""

    # Client errors (4xx)
    VALIDATION = "validation"
    NOT_FOUND = "not_found"

    # Server errors (5xx)
    INTERNAL = "internal"
    ORCHESTRATION = "orchestration"
    DATABASE = "database"
    COMPLETION_SERVICE = "completion_service"
    DEPENDENCY_ERROR = "dependency_error"


class ErrorSeverity(str, Enum):
    """Severity levels for error tracking and alerting."""

    LOW = "low"  # User-correctable, no action needed
    MEDIUM = "medium"  # May need investigation
    HIGH = "high"  # Requires attention
    CRITICAL = "critical"  # Immediate attention required


class AtlasError(Exception):
    """
    Base exception for all orchestrator errors.

    Provides structured error responses with:
    - Unique error ID for tracking
    - Category and severity classification
    - Detailed context for debugging
    - Suggested actions for resolution

    The envelope always carries the human-readable message under ``error``.
    """

    status_code: int = 500
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        suggested_action: Optional[str] = None,
        error_id: Optional[str] = None,
        include_trace: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        self.suggested_action = suggested_action
        self.error_id = error_id or str(uuid4())[:8]
        self.timestamp = datetime.now(timezone.utc).isoformat()

        if include_trace and original_error:
            self._traceback = "".join(
                traceback.format_exception(
                    type(original_error), original_error, original_error.__traceback__
                )
            )
        else:
            self._traceback = None

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON API response.

        Args:
            include_debug: Include stack trace and internal details

        Returns:
            Error envelope with ``error`` set to the message
        """
        result: Dict[str, Any] = {
            "error": self.message,
            "error_type": self.__class__.__name__,
            "error_id": self.error_id,
            "category": self.category.value,
            "timestamp": self.timestamp,
        }

        if self.suggested_action:
            result["suggested_action"] = self.suggested_action

        if self.details:
            result["details"] = self.details

        if include_debug:
            result["severity"] = self.severity.value
            if self.original_error:
                result["original_error"] = str(self.original_error)
            if self._traceback:
                result["traceback"] = self._traceback

        return result


# =============================================================================
# VALIDATION ERRORS (400)
# =============================================================================


class ValidationError(AtlasError):
    """
    Raised when request validation fails.

    Examples:
    - Missing ``action``, ``query`` or ``userId``
    - Unknown action name
    - Field of the wrong type
    """

    status_code = 400
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        schema_errors: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["provided_value"] = str(value)[:100]
        if schema_errors:
            details["schema_errors"] = schema_errors

        kwargs.setdefault(
            "suggested_action", "Check the request body against the action's required fields."
        )

        super().__init__(message, details=details, **kwargs)


# =============================================================================
# NOT FOUND ERRORS (404)
# =============================================================================


class NotFoundError(AtlasError):
    """Raised when a requested resource doesn't exist."""

    status_code = 404
    category = ErrorCategory.NOT_FOUND
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} '{resource_id}' not found"

        details = kwargs.pop("details", {})
        details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        suggested_action = kwargs.pop(
            "suggested_action", f"Verify the {resource_type.lower()} identifier is correct."
        )

        super().__init__(message, details=details, suggested_action=suggested_action, **kwargs)


# =============================================================================
# ORCHESTRATION ERRORS (500)
# =============================================================================


class OrchestratorError(AtlasError):
    """Raised when the engine fails to produce a routing decision."""

    status_code = 500
    category = ErrorCategory.ORCHESTRATION
    severity = ErrorSeverity.HIGH

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if stage:
            details["stage"] = stage

        kwargs.setdefault(
            "suggested_action",
            "Retry the request. If the problem persists, contact support with the error ID.",
        )

        super().__init__(message, details=details, **kwargs)


# =============================================================================
# DEPENDENCY ERRORS
# =============================================================================


class DependencyError(AtlasError):
    """
    Raised when an external dependency fails.

    Examples:
    - Supabase unavailable
    - Completion service unreachable
    """

    status_code = 503
    category = ErrorCategory.DEPENDENCY_ERROR
    severity = ErrorSeverity.HIGH

    def __init__(
        self,
        dependency: str,
        operation: Optional[str] = None,
        **kwargs,
    ):
        message = kwargs.pop("message", None)
        if message is None:
            message = f"Dependency '{dependency}' is unavailable"
            if operation:
                message = f"Dependency '{dependency}' failed during {operation}"

        details = kwargs.pop("details", {})
        details["dependency"] = dependency
        if operation:
            details["operation"] = operation

        kwargs.setdefault(
            "suggested_action",
            "The service is experiencing issues. Please try again shortly. "
            "If the problem persists, contact support with the error ID.",
        )

        super().__init__(message, details=details, **kwargs)


class DatabaseError(DependencyError):
    """
    Raised when a store read or write fails.

    Surfaces as 500: the caller cannot fix an infrastructure fault by
    changing the request.
    """

    status_code = 500
    category = ErrorCategory.DATABASE

    def __init__(
        self,
        operation: str,
        table: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table

        super().__init__("database", operation=operation, details=details, **kwargs)


class CompletionServiceError(DependencyError):
    """
    Raised when the external completion service fails.

    The upstream HTTP status is carried through unchanged (429 stays 429,
    503 stays 503). Network failures with no status surface as 502.
    """

    category = ErrorCategory.COMPLETION_SERVICE

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        provider: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if provider:
            details["provider"] = provider

        super().__init__(
            "completion_service",
            operation="complete",
            message=f"Completion service error: {message}",
            details=details,
            **kwargs,
        )
        self.status_code = upstream_status if upstream_status else 502


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def error_response(error: AtlasError, include_debug: bool = False) -> Dict[str, Any]:
    """
    Create a standardized error response dictionary.

    Args:
        error: The AtlasError instance
        include_debug: Include debug information (stack traces, etc.)

    Returns:
        Dictionary ready for JSONResponse
    """
    return error.to_dict(include_debug=include_debug)


def wrap_exception(
    exc: Exception,
    operation: Optional[str] = None,
    include_trace: bool = False,
) -> AtlasError:
    """
    Wrap a generic exception in an appropriate AtlasError.

    Args:
        exc: The original exception
        operation: Optional operation description
        include_trace: Include stack trace in error details

    Returns:
        An appropriate AtlasError subclass
    """
    if isinstance(exc, AtlasError):
        return exc

    exc_str = str(exc).lower()
    exc_type = type(exc).__name__

    # postgrest raises APIError for failed queries
    if exc_type == "APIError" or any(
        kw in exc_str for kw in ["postgres", "database", "supabase", "postgrest"]
    ):
        return DatabaseError(
            operation or "query",
            original_error=exc,
            include_trace=include_trace,
        )

    if any(kw in exc_str for kw in ["connection", "connect", "unreachable", "unavailable"]):
        return DependencyError(
            "unknown",
            operation=operation,
            original_error=exc,
            include_trace=include_trace,
        )

    return OrchestratorError(
        f"An unexpected error occurred: {exc_type}",
        stage=operation,
        original_error=exc,
        include_trace=include_trace,
    )
