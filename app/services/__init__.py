"""Download pipeline services package."""

from .extractor import (
    LibraryResolver,
    MediaResolver,
    SubprocessResolver,
    build_resolver,
)
from .rate_limiter import RateLimiter
from .relay import RelayResponse, StreamingRelay
from .url_validator import extract_video_id, validate_source_url

__all__ = [
    "LibraryResolver",
    "MediaResolver",
    "RateLimiter",
    "RelayResponse",
    "StreamingRelay",
    "SubprocessResolver",
    "build_resolver",
    "extract_video_id",
    "validate_source_url",
]
