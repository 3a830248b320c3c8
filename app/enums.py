"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class ResolverBackend(StrEnum):
    """Supported media URL resolution backends."""

    SUBPROCESS = "subprocess"
    LIBRARY = "library"


class ErrorKind(StrEnum):
    """Failure categories raised by the download pipeline stages."""

    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    EXTRACTION = "extraction"
    EXTRACTION_TIMEOUT = "extraction_timeout"
    UPSTREAM_CONNECT = "upstream_connect"
    UPSTREAM_STREAM = "upstream_stream"
    INTERNAL = "internal"
