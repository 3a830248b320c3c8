"""Redaction helpers to keep signed URLs and credentials out of logs.

CDN media URLs carry signatures and expiry tokens in their query string; a
logged URL must never be replayable. Header mappings are scrubbed by key.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlsplit, urlunsplit


_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"

_SECRET_KEY_RE = re.compile(
    r"(^|[_-])(password|secret|token|signature|cookie|set-cookie|authorization|api[_-]?key)($|[_-])",
    flags=re.IGNORECASE,
)

_URL_RE = re.compile(r"https?://[^\s\"'<>]+", flags=re.IGNORECASE)


def redact_url(url: str) -> str:
    """Drop query string, fragment and userinfo from a URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return _REPLACEMENT

    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    query = _REPLACEMENT if parts.query else ""
    return urlunsplit((parts.scheme, host, parts.path, query, ""))


def redact_text(text: str, *, max_chars: int = 2000) -> str:
    """Redact URLs embedded in a text blob and truncate."""
    out = _URL_RE.sub(lambda m: redact_url(m.group(0)), text)
    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX
    return out


def sanitize(obj: Any, *, max_depth: int = 4, max_chars: int = 2000) -> Any:
    """Sanitize an object for logging.

    - Mapping keys that look like credentials are redacted.
    - Strings have their URLs reduced to scheme/host/path.
    - Deep structures are truncated by depth.
    """

    if max_depth <= 0:
        return "…"

    if obj is None or isinstance(obj, (int, float, bool)):
        return obj

    if isinstance(obj, bytes):
        return f"<bytes:{len(obj)}>"

    if isinstance(obj, str):
        return redact_text(obj, max_chars=max_chars)

    if isinstance(obj, Mapping):
        out: dict[str, Any] = {}
        for k, v in obj.items():
            ks = str(k)
            if _SECRET_KEY_RE.search(ks):
                out[ks] = _REPLACEMENT
            else:
                out[ks] = sanitize(v, max_depth=max_depth - 1, max_chars=max_chars)
        return out

    if isinstance(obj, Sequence):
        items = list(obj)
        if len(items) > 50:
            items = items[:50]
            items.append("…")
        return [sanitize(v, max_depth=max_depth - 1, max_chars=max_chars) for v in items]

    return redact_text(str(obj), max_chars=max_chars)
