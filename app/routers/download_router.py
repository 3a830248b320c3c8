"""Download API endpoint.

Routers handle HTTP concerns only. The endpoint sequences the pipeline stages
(validate → rate limit → resolve → relay) and is the single place where a
stage failure is turned into an HTTP status and JSON body.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

from app.enums import ErrorKind
from app.errors import InternalError, RateLimitExceeded, RelayServiceError
from app.models.domain import ErrorResponse, RelayRequest
from app.services.url_validator import validate_source_url

if TYPE_CHECKING:
    from app.services.extractor import MediaResolver
    from app.services.rate_limiter import RateLimiter
    from app.services.relay import StreamingRelay

logger = logging.getLogger(__name__)

# kind -> (status, error title, fallback message)
ERROR_RESPONSES: dict[ErrorKind, tuple[int, str, str]] = {
    ErrorKind.VALIDATION: (
        400,
        "Invalid TikTok URL",
        "Please provide a valid TikTok video URL",
    ),
    ErrorKind.RATE_LIMIT: (
        429,
        "Rate limit exceeded",
        "Too many requests",
    ),
    ErrorKind.EXTRACTION: (
        500,
        "Extraction failed",
        "Failed to extract video URL. The video might be private or unavailable.",
    ),
    ErrorKind.EXTRACTION_TIMEOUT: (
        500,
        "Extraction failed",
        "Video extraction timed out. The video might be private or unavailable.",
    ),
    ErrorKind.UPSTREAM_CONNECT: (
        500,
        "Streaming failed",
        "Failed to stream video",
    ),
    ErrorKind.UPSTREAM_STREAM: (
        500,
        "Streaming failed",
        "Failed to stream video",
    ),
    ErrorKind.INTERNAL: (
        500,
        "Internal server error",
        "An unexpected error occurred",
    ),
}

_PRIVATE_HINT = "The video might be private or unavailable."


def error_response(exc: RelayServiceError) -> JSONResponse:
    """Translate a pipeline failure into its JSON error response."""
    status_code, title, fallback = ERROR_RESPONSES[exc.kind]
    message = str(exc) or fallback
    if exc.kind in (ErrorKind.EXTRACTION, ErrorKind.EXTRACTION_TIMEOUT) and _PRIVATE_HINT not in message:
        message = f"{message}. {_PRIVATE_HINT}"

    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(max(1, int(exc.retry_after + 0.999)))}

    body = ErrorResponse(error=title, message=message)
    return JSONResponse(status_code=status_code, content=body.to_dict(mode="json"), headers=headers)


def client_identifier(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Rate-limit key for a request: the peer address, or ``unknown``."""
    if trust_forwarded_for:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            first = xff.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_download_router(
    rate_limiter: "RateLimiter",
    resolver: "MediaResolver",
    relay: "StreamingRelay",
    *,
    trust_forwarded_for: bool = False,
) -> APIRouter:
    """Create download router with injected services.

    Args:
        rate_limiter: Admission control shared by all requests.
        resolver: Backend turning page URLs into direct media URLs.
        relay: Streaming relay for the resolved media.
        trust_forwarded_for: Key the limiter on X-Forwarded-For.

    Returns:
        APIRouter with the /download endpoint configured
    """
    router = APIRouter(tags=["download"])

    @router.get("/download", response_model=None)
    async def download(
        request: Request,
        url: str | None = Query(default=None, description="TikTok video page URL"),
    ) -> Response:
        """Resolve a TikTok video page and stream the media to the client.

        Returns:
            The media stream (200, or 206 for partial content) or a JSON error.
        """
        if not url or not url.strip():
            body = ErrorResponse(
                error="Missing URL parameter",
                message="Please provide a TikTok video URL in the query parameter: ?url=<tiktok_url>",
            )
            return JSONResponse(status_code=400, content=body.to_dict(mode="json"))

        client_id = client_identifier(request, trust_forwarded_for=trust_forwarded_for)

        try:
            source = validate_source_url(url)
            rate_limiter.hit(client_id)
            media = await resolver.resolve(source.url)
            return await relay.open(
                media,
                RelayRequest(range_header=request.headers.get("range"), client_id=client_id),
            )
        except RelayServiceError as e:
            log = logger.info if e.kind in (ErrorKind.VALIDATION, ErrorKind.RATE_LIMIT) else logger.warning
            log("Download rejected for %s (%s): %s", client_id, e.kind, e)
            return error_response(e)
        except Exception as e:
            logger.exception("Unexpected error handling download for %s: %s", client_id, e)
            return error_response(InternalError(str(e)))

    return router
