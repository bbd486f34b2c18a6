"""
Observability Module.

Structured logging with JSON or console output, run IDs and redaction
of sensitive values.
"""

from dbreactor.observability.logging import (
    LogContext,
    configure_logging,
    get_logger,
    new_run_id,
    run_id_var,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "new_run_id",
    "run_id_var",
]
