"""Logging helpers and filters.

Applied from both entrypoints (``python -m app.main`` and
``uvicorn app.asgi:app``).
"""

from __future__ import annotations

import logging
import sys

# Liveness probes hit these every few seconds.
QUIET_PATHS: tuple[str, ...] = ("/health",)


def _is_quiet_path(path: str) -> bool:
    base = path.split("?", 1)[0]
    return base in QUIET_PATHS


class SuppressHealthCheckAccessLog(logging.Filter):
    """Drop Uvicorn access log records for liveness probes.

    Uvicorn's access logger formats with args
    ``(client_addr, method, full_path, http_version, status_code)``.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            return not _is_quiet_path(str(args[2]))

        message = record.getMessage()
        for path in QUIET_PATHS:
            if f'"GET {path} ' in message or f'"HEAD {path} ' in message:
                return False
        return True


def install_uvicorn_access_log_filters() -> None:
    """Install filters for Uvicorn loggers.

    Safe to call multiple times.
    """

    access_logger = logging.getLogger("uvicorn.access")

    for existing in access_logger.filters:
        if isinstance(existing, SuppressHealthCheckAccessLog):
            return

    access_logger.addFilter(SuppressHealthCheckAccessLog())


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging to stdout and quiet chatty libraries."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # httpx logs every upstream request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
