"""Exceptions raised by the download pipeline.

Each stage raises its own kind; translating a kind into an HTTP response is
left to the download router.
"""

from app.enums import ErrorKind


class RelayServiceError(Exception):
    """Base class for pipeline failures."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ValidationError(RelayServiceError):
    """Raised when the source URL is malformed or not a supported video page."""

    kind = ErrorKind.VALIDATION


class RateLimitExceeded(RelayServiceError):
    """Raised when a client has used up its requests for the current window."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, *, limit: int, window_seconds: float, retry_after: float):
        super().__init__(message)
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after


class ExtractionError(RelayServiceError):
    """Raised when the resolver cannot produce a direct media URL."""

    kind = ErrorKind.EXTRACTION


class ExtractionTimeout(ExtractionError):
    """Raised when the resolver exceeds its wall-clock bound."""

    kind = ErrorKind.EXTRACTION_TIMEOUT


class UpstreamConnectError(RelayServiceError):
    """Raised when the upstream fetch fails before any response headers arrive."""

    kind = ErrorKind.UPSTREAM_CONNECT


class UpstreamStreamError(RelayServiceError):
    """Raised when the upstream body fails after downstream headers were committed."""

    kind = ErrorKind.UPSTREAM_STREAM


class InternalError(RelayServiceError):
    """Catch-all for unexpected failures."""

    kind = ErrorKind.INTERNAL
