"""Pydantic domain models.

These models flow between the validator, resolver, relay and router. None of
them outlive the request that created them except RateLimitEntry, which is
owned by the RateLimiter table.
"""

from app.models.base import FrozenJsonModel, JsonModel


class SourceVideo(FrozenJsonModel):
    """Accepted source page URL.

    At least one of ``video_id`` or ``handle`` is set.
    """

    url: str
    host: str
    video_id: str | None = None
    handle: str | None = None


class ResolvedMedia(FrozenJsonModel):
    """Direct media URL produced by a resolver for one source page."""

    direct_url: str
    source_url: str


class RelayRequest(FrozenJsonModel):
    """The parts of the inbound request the relay is allowed to see."""

    range_header: str | None = None
    client_id: str


class RateLimitEntry(JsonModel):
    """Fixed-window counter for one client.

    ``reset_time`` is expressed on the limiter's clock (monotonic seconds).
    """

    count: int
    reset_time: float


class ErrorResponse(JsonModel):
    """JSON body returned for every failure before the media stream starts."""

    error: str
    message: str


class HealthResponse(JsonModel):
    """Liveness payload."""

    status: str = "ok"
    timestamp: str
