"""Error log file handler for capturing errors and warnings to a file.

Relay truncations, extraction failures and unexpected errors are kept in a
rotating file so they survive container log rotation.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.config import RelayConfig


_error_file_handler: RotatingFileHandler | None = None


def setup_error_log_file(config: "RelayConfig") -> RotatingFileHandler | None:
    """Setup error log file handler based on configuration.

    Safe to call multiple times; a previously installed handler is replaced.

    Args:
        config: Application configuration with error log settings.

    Returns:
        The configured RotatingFileHandler, or None if disabled.
    """
    global _error_file_handler

    if not getattr(config, "error_log_file_enabled", False):
        return None

    log_path = getattr(config, "error_log_file_path", "./logs/errors.log")
    log_level_str = str(getattr(config, "error_log_level", "WARNING")).upper()
    max_bytes = getattr(config, "error_log_max_bytes", 10_485_760)
    backup_count = getattr(config, "error_log_backup_count", 5)

    log_level = getattr(logging, log_level_str, logging.WARNING)

    log_file = Path(log_path).expanduser()
    if not log_file.is_absolute():
        from app.config import _find_repo_root

        log_file = _find_repo_root(start=Path(__file__)) / log_file
    log_file = log_file.resolve()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Warning: Cannot create error log directory {log_file.parent}: {e}", file=sys.stderr)
        return None

    try:
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    if _error_file_handler is not None:
        root_logger.removeHandler(_error_file_handler)
        _error_file_handler.close()
    root_logger.addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)", log_file, log_level_str
    )
    return handler

