"""Observability utilities (request tracing, redaction, error logging)."""

from app.observability.error_log_file import setup_error_log_file
from app.observability.trace_context import TraceIdMiddleware
from app.observability.trace_logging import trace_event

__all__ = [
    "TraceIdMiddleware",
    "setup_error_log_file",
    "trace_event",
]
