"""Structured trace/event logging.

We emit a single JSON object per line so logs are easy to grep and ship.
Events describe pipeline steps (extraction start/failure, relay start,
completion, truncation). Payload fields are sanitized so signed media URLs
never reach the logs.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from app.observability.redaction import sanitize
from app.observability.trace_context import get_actor_id, get_trace_id


_logger = logging.getLogger("app.trace")
_error_logger = logging.getLogger("app.trace.errors")


def trace_event(
    event: str,
    *,
    max_chars: int = 2000,
    **fields: Any,
) -> None:
    """Emit a structured trace event.

    Args:
        event: Short event name, e.g. 'relay.start'.
        max_chars: Max chars for any string field after sanitization.
        **fields: Event payload (will be sanitized).
    """

    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "trace_id": get_trace_id(),
        "actor_id": get_actor_id(),
    }

    for k, v in fields.items():
        record[k] = sanitize(v, max_chars=max_chars)

    try:
        _logger.info(json.dumps(record, ensure_ascii=False, separators=(",", ":")))
    except (TypeError, ValueError):
        _logger.info('{"event":"%s","error":"failed_to_serialize"}', event)
        return

    # Failures also go to the error logger so the error log file picks them up.
    if ".error" in event or "error" in fields:
        _error_logger.warning(
            "[%s] %s (trace_id=%s, actor_id=%s)",
            event,
            record.get("error", "unknown error"),
            record.get("trace_id"),
            record.get("actor_id"),
        )
