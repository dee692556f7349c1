"""
Structured Logging Configuration.

Standardized logging for the routing engine:
- JSON format for production (log aggregation tools)
- Human-readable format for development
- Request context propagation (request_id, user_id, session_id, action, routing tier)

Every log record emitted while a request is being handled carries the request
context, so a single orchestration can be followed from intent classification
through the tier decision to the deferred learning writes.
"""

import json
import logging
import os
import sys
import threading
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# =============================================================================
# Context Variables for Request Tracking
# =============================================================================

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
action_var: ContextVar[Optional[str]] = ContextVar("action", default=None)
routing_tier_var: ContextVar[Optional[str]] = ContextVar("routing_tier", default=None)

_CONTEXT_VARS: Dict[str, ContextVar[Optional[str]]] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "session_id": session_id_var,
    "action": action_var,
    "routing_tier": routing_tier_var,
}


def set_request_context(
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    action: Optional[str] = None,
    routing_tier: Optional[str] = None,
) -> None:
    """
    Set request context for logging.

    Only the values that are not None are updated, so the routing tier can be
    added later in the request without clobbering the identifiers.

    Args:
        request_id: Unique request identifier (X-Request-ID header)
        user_id: Caller's user identifier
        session_id: Conversation session identifier
        action: RPC action being handled
        routing_tier: Tier that terminated the request
    """
    values = {
        "request_id": request_id,
        "user_id": user_id,
        "session_id": session_id,
        "action": action,
        "routing_tier": routing_tier,
    }
    for name, value in values.items():
        if value is not None:
            _CONTEXT_VARS[name].set(value)


def clear_request_context() -> None:
    """Clear all request context variables."""
    for var in _CONTEXT_VARS.values():
        var.set(None)


def get_request_context() -> Dict[str, Optional[str]]:
    """Get current request context as a dictionary."""
    return {name: var.get() for name, var in _CONTEXT_VARS.items()}


# =============================================================================
# JSON Formatter for Structured Logging
# =============================================================================

_STANDARD_RECORD_FIELDS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "thread",
    "threadName",
    "taskName",
} | set(_CONTEXT_VARS)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Format:
    {
        "timestamp": "2026-01-22T12:00:00.000Z",
        "level": "INFO",
        "logger": "atlas.orchestrator.engine",
        "message": "Tier 1 routing succeeded",
        "request_id": "abc123",
        "routing_tier": "tier1",
        "extra": {...}
    }
    """

    def __init__(
        self,
        include_hostname: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize JSON formatter.

        Args:
            include_hostname: Include hostname in log records
            extra_fields: Static fields to include in all log records
        """
        super().__init__()
        self.extra_fields = extra_fields or {}
        self._hostname: Optional[str] = None

        if include_hostname:
            import socket

            self._hostname = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name, value in get_request_context().items():
            if value:
                log_entry[name] = value

        if self._hostname:
            log_entry["hostname"] = self._hostname

        log_entry.update(self.extra_fields)

        if record.levelno >= logging.WARNING:
            log_entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        extra = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STANDARD_RECORD_FIELDS and not k.startswith("_")
        }
        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry, default=str, ensure_ascii=False)


# =============================================================================
# Human-Readable Formatter for Development
# =============================================================================


class ColoredFormatter(logging.Formatter):
    """
    Colored human-readable formatter for development.

    Format:
    2026-01-22 12:00:00 [INFO    ] atlas.orchestrator.engine - Message [req:abc123 tier:tier1]
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
        "GRAY": "\033[90m",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        if self.use_colors:
            level_color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            gray = self.COLORS["GRAY"]
        else:
            level_color = reset = gray = ""

        level = f"{level_color}[{record.levelname:8s}]{reset}"

        logger_name = record.name
        if len(logger_name) > 30:
            logger_name = "..." + logger_name[-27:]

        context_parts = []
        request_id = request_id_var.get()
        action = action_var.get()
        routing_tier = routing_tier_var.get()

        if request_id:
            context_parts.append(f"req:{request_id[:8]}")
        if action:
            context_parts.append(f"action:{action}")
        if routing_tier:
            context_parts.append(f"tier:{routing_tier}")

        context_str = f" {gray}[{' '.join(context_parts)}]{reset}" if context_parts else ""

        output = f"{timestamp} {level} {logger_name} - {record.getMessage()}{context_str}"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


class ContextFilter(logging.Filter):
    """
    Filter that adds context variables to log records.

    This allows using context in format strings like %(request_id)s.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name, var in _CONTEXT_VARS.items():
            setattr(record, name, var.get() or "-")
        return True


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig:
    """
    Centralized logging configuration.

    Supports:
    - JSON format for production (LOG_FORMAT=json)
    - Human-readable format for development (LOG_FORMAT=text)
    - Module-specific levels (LOG_LEVELS=atlas.orchestrator=DEBUG,httpx=WARNING)
    """

    _instance: Optional["LoggingConfig"] = None
    _lock = threading.Lock()
    _initialized = False

    def __new__(cls) -> "LoggingConfig":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.log_format = os.environ.get("LOG_FORMAT", "text").lower()
        self.service_name = os.environ.get("SERVICE_NAME", "atlas-orchestration")
        self.environment = os.environ.get("ENVIRONMENT", "development")

        self.module_levels: Dict[str, str] = {}
        module_levels_str = os.environ.get("LOG_LEVELS", "")
        if module_levels_str:
            for pair in module_levels_str.split(","):
                if "=" in pair:
                    module, level = pair.split("=", 1)
                    self.module_levels[module.strip()] = level.strip().upper()

        self._initialized = True

    def configure(self) -> None:
        """Configure logging for the application."""
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        if self.log_format == "json":
            handler.setFormatter(
                JSONFormatter(
                    include_hostname=True,
                    extra_fields={
                        "service": self.service_name,
                        "environment": self.environment,
                    },
                )
            )
        else:
            use_colors = os.environ.get("NO_COLOR", "").lower() not in ("1", "true", "yes")
            handler.setFormatter(ColoredFormatter(use_colors=use_colors))

        handler.setLevel(getattr(logging, self.log_level, logging.INFO))
        handler.addFilter(ContextFilter())
        root_logger.addHandler(handler)

        for module, level in self.module_levels.items():
            logging.getLogger(module).setLevel(getattr(logging, level, logging.INFO))

        # Quiet noisy third-party loggers
        for noisy_logger in [
            "httpx",
            "httpcore",
            "hpack",
            "postgrest",
            "urllib3",
            "asyncio",
            "uvicorn.access",
            "openai",
            "anthropic",
        ]:
            logging.getLogger(noisy_logger).setLevel(logging.WARNING)

        logging.getLogger(__name__).info(
            f"Logging configured: format={self.log_format}, level={self.log_level}, "
            f"service={self.service_name}, environment={self.environment}"
        )


def configure_logging() -> None:
    """Configure application logging (call once at startup)."""
    LoggingConfig().configure()


# =============================================================================
# Performance Logging Utilities
# =============================================================================


class timed_operation:
    """
    Context manager for timing operations and logging duration.

    Usage:
        with timed_operation("tier1_route", logger) as timer:
            decision = await router.route(task_type)
        timer.duration_ms
    """

    def __init__(
        self,
        operation_name: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
        warn_threshold_ms: Optional[float] = None,
    ):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self.level = level
        self.warn_threshold_ms = warn_threshold_ms
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        level = self.level
        if self.warn_threshold_ms and self.duration_ms > self.warn_threshold_ms:
            level = logging.WARNING

        self.logger.log(
            level,
            f"{self.operation_name} completed in {self.duration_ms:.2f}ms",
            extra={"operation": self.operation_name, "duration_ms": self.duration_ms},
        )

        return False
