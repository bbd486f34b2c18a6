"""
Structured Logging Configuration.

Configures structlog for:
- JSON output in production
- Colored console output in development
- Run ID injection (one ID per engine operation)
- Temporary bound context (operation, migration)
- Redaction of secrets and sensitive substitution variables
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variable for the current run ID
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)

# Context variable for additional log context
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

SENSITIVE_KEYS = frozenset({
    "password", "passwd", "pwd", "secret", "token", "api_key", "apikey",
    "credential", "private_key", "connection_string", "authorization",
})

REDACTED = "***REDACTED***"


def new_run_id() -> str:
    """Short random identifier for one engine operation."""
    return uuid.uuid4().hex[:12]


class LogContext:
    """
    Context manager for adding temporary context to logs.

    A ``run_id`` keyword also sets the run ID context variable.

    Usage:
        with LogContext(run_id=new_run_id(), operation="apply_upgrades"):
            logger.info("Starting")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._token = None
        self._run_token = None

    def __enter__(self):
        current = _log_context.get().copy()
        current.update({k: v for k, v in self._context.items() if k != "run_id"})
        self._token = _log_context.set(current)
        if "run_id" in self._context:
            self._run_token = run_id_var.set(self._context["run_id"])
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._run_token:
            run_id_var.reset(self._run_token)
        if self._token:
            _log_context.reset(self._token)
        return False


def add_run_id(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add run ID to log events."""
    run_id = run_id_var.get()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def add_log_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add context variables to log events."""
    context = _log_context.get()
    if context:
        for key, value in context.items():
            event_dict.setdefault(key, value)
    return event_dict


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO timestamp to log events."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(s in lowered for s in SENSITIVE_KEYS)


def censor_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Censor sensitive data from logs.

    Nested mappings are walked, so a ``variables`` dict with a
    ``DbPassword`` entry is redacted entry by entry.
    """

    def censor_value(key: str, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: censor_value(str(k), v) for k, v in value.items()}
        if isinstance(value, str) and is_sensitive(key):
            return REDACTED
        return value

    for key in list(event_dict.keys()):
        event_dict[key] = censor_value(key, event_dict[key])

    return event_dict


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structlog for dbreactor.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" for production, "console" for development)
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_timestamp,
        add_run_id,
        add_log_context,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    # Driver chatter
    logging.getLogger("neo4j").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
