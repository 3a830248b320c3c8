"""Range-aware streaming relay.

Proxies an upstream media response to the downstream client:

- the inbound ``Range`` header is forwarded byte-for-byte, together with the
  browser-like headers the CDN expects;
- the downstream status mirrors the upstream one, except that any response
  carrying ``Content-Range`` is reported as 206;
- the body is piped chunk by chunk, never buffered in full.

Failures before the first body chunk arrives raise ``UpstreamConnectError``
and can still be answered with a JSON error. Once the downstream headers are
committed a failure raises ``UpstreamStreamError`` from the body iterator,
which makes the server abort the connection (a truncated transfer for the
client).
"""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncIterator, Mapping, Sequence

import anyio
import httpx
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from app.errors import UpstreamConnectError, UpstreamStreamError
from app.models.domain import RelayRequest, ResolvedMedia
from app.observability.trace_logging import trace_event
from app.services.url_validator import extract_video_id

logger = logging.getLogger(__name__)

VIDEO_MEDIA_TYPE = "video/mp4"
DEFAULT_REFERER = "https://www.tiktok.com/"

USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
)


def download_filename(source_url: str, platform: str = "tiktok") -> str:
    """Attachment filename for a source page, e.g. ``tiktok-123.mp4``."""
    return f"{platform}-{extract_video_id(source_url) or 'video'}.mp4"


class RelayResponse(StreamingResponse):
    """StreamingResponse that owns the upstream response it pipes.

    The upstream response is closed whenever sending ends: on completion, on
    an upstream error, and when the server cancels the send because the
    client went away.
    """

    def __init__(self, upstream: httpx.Response, content: AsyncIterator[bytes], **kwargs) -> None:
        super().__init__(content, **kwargs)
        self.upstream = upstream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.upstream.aclose()


class StreamingRelay:
    """Pipe a resolved media URL to the client with range semantics."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        user_agents: Sequence[str] = USER_AGENTS,
        referer: str = DEFAULT_REFERER,
        platform: str = "tiktok",
    ) -> None:
        """Initialize the relay.

        Args:
            client: Shared HTTP client; its timeouts bound connect and idle reads.
            user_agents: Pool the upstream User-Agent is picked from.
            referer: Canonical origin of the source platform.
            platform: Prefix used in the attachment filename.
        """
        if not user_agents:
            raise ValueError("user_agents must not be empty")
        self._client = client
        self.user_agents = tuple(user_agents)
        self.referer = referer
        self.platform = platform

    def upstream_headers(self, range_header: str | None) -> dict[str, str]:
        headers = {
            "User-Agent": random.choice(self.user_agents),
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            # Bytes are piped undecoded, so the CDN must not compress them.
            "Accept-Encoding": "identity",
            "Referer": self.referer,
        }
        if range_header:
            headers["Range"] = range_header
        return headers

    def downstream_headers(self, upstream_headers: Mapping[str, str], source_url: str) -> dict[str, str]:
        headers = {"Accept-Ranges": "bytes"}
        for name in ("Content-Length", "Content-Range"):
            value = upstream_headers.get(name)
            if value is not None:
                headers[name] = value
        headers["Content-Disposition"] = (
            f'attachment; filename="{download_filename(source_url, self.platform)}"'
        )
        return headers

    async def open(self, media: ResolvedMedia, request: RelayRequest) -> RelayResponse:
        """Connect upstream and return the live downstream response.

        Raises:
            UpstreamConnectError: If the upstream request fails before the
                first body chunk is received.
        """
        trace_event(
            "relay.start",
            direct_url=media.direct_url,
            range=request.range_header,
            client_id=request.client_id,
        )
        try:
            upstream_request = self._client.build_request(
                "GET", media.direct_url, headers=self.upstream_headers(request.range_header)
            )
            upstream = await self._client.send(upstream_request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            trace_event("relay.error", stage="connect", error=str(e), error_type=type(e).__name__)
            raise UpstreamConnectError(f"Failed to reach media host: {e}") from e

        # Read the first chunk before committing downstream headers so an
        # upstream that dies immediately still gets a JSON error response.
        body = upstream.aiter_raw()
        try:
            first_chunk = await anext(body)
        except StopAsyncIteration:
            first_chunk = b""
        except httpx.HTTPError as e:
            await upstream.aclose()
            trace_event("relay.error", stage="first_chunk", error=str(e), error_type=type(e).__name__)
            raise UpstreamConnectError(f"Media host failed before sending data: {e}") from e

        status_code = 206 if "content-range" in upstream.headers else upstream.status_code
        logger.info(
            "Relaying upstream %s as %s (content-length=%s, content-range=%s)",
            upstream.status_code,
            status_code,
            upstream.headers.get("content-length"),
            upstream.headers.get("content-range"),
        )

        return RelayResponse(
            upstream,
            self._iter_body(upstream, body, first_chunk),
            status_code=status_code,
            headers=self.downstream_headers(upstream.headers, media.source_url),
            media_type=VIDEO_MEDIA_TYPE,
        )

    async def _iter_body(
        self,
        upstream: httpx.Response,
        body: AsyncIterator[bytes],
        first_chunk: bytes,
    ) -> AsyncIterator[bytes]:
        sent = 0
        try:
            if first_chunk:
                sent += len(first_chunk)
                yield first_chunk
            async for chunk in body:
                sent += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already on the wire; the only signal left is to
            # abort the connection.
            trace_event(
                "relay.truncated",
                bytes_sent=sent,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamStreamError(f"Upstream failed after {sent} bytes: {e}") from e
        finally:
            await upstream.aclose()

        trace_event("relay.completed", bytes_sent=sent)
