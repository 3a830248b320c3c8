"""Trace context (request correlation).

Each inbound HTTP request gets a trace id, taken from ``X-Request-ID`` when the
client supplies one. The id is stored in a ContextVar so log lines emitted by
the validator, resolver and relay can be correlated, and it is echoed back in
the response headers.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send


REQUEST_ID_HEADER = "X-Request-ID"

_trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
_actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)

_VALID_TRACE_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_trace_id() -> str:
    return uuid.uuid4().hex


def set_trace(*, trace_id: str | None, actor_id: str | None = None) -> None:
    """Set trace context for the current execution context."""

    _trace_id_var.set(trace_id)
    if actor_id is not None:
        _actor_id_var.set(actor_id)


def get_trace_id() -> str | None:
    return _trace_id_var.get()


def get_actor_id() -> str | None:
    return _actor_id_var.get()


class TraceIdMiddleware:
    """Pure ASGI middleware that assigns a trace id to every HTTP request.

    Written against the raw ASGI interface so streaming responses pass through
    untouched and client disconnects still reach the endpoint.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = Headers(scope=scope).get(REQUEST_ID_HEADER)
        trace_id = incoming if incoming and _VALID_TRACE_ID.match(incoming) else new_trace_id()
        client = scope.get("client")
        set_trace(trace_id=trace_id, actor_id=client[0] if client else None)

        async def send_with_trace_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(REQUEST_ID_HEADER, trace_id)
            await send(message)

        await self.app(scope, receive, send_with_trace_id)
