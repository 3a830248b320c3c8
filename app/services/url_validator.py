"""Source page URL validation.

Pure functions: no network access and no side effects.
"""

import re
from urllib.parse import urlsplit

from app.errors import ValidationError
from app.models.domain import SourceVideo

ALLOWED_HOSTS = frozenset(
    {
        "tiktok.com",
        "www.tiktok.com",
        "m.tiktok.com",
        "vm.tiktok.com",
        "vt.tiktok.com",
    }
)

_VIDEO_ID_RE = re.compile(r"/video/(\d+)")
_HANDLE_RE = re.compile(r"/@([^/?#]+)")


def extract_video_id(url: str) -> str | None:
    """Return the numeric id following ``/video/`` in a URL, if any."""
    match = _VIDEO_ID_RE.search(url or "")
    return match.group(1) if match else None


def validate_source_url(raw: str) -> SourceVideo:
    """Validate a user-supplied video page URL.

    The host must be on the allow-list and the path must carry a numeric
    video id segment or a user handle segment (either is enough).

    Args:
        raw: URL as received from the client.

    Returns:
        SourceVideo describing the accepted URL.

    Raises:
        ValidationError: If the URL is malformed, off-platform or does not
            point at a video resource.
    """
    url = (raw or "").strip()
    try:
        parts = urlsplit(url)
        host = (parts.hostname or "").lower()
    except ValueError as e:
        raise ValidationError(f"Malformed URL: {e}") from e

    if parts.scheme.lower() not in ("http", "https") or not host:
        raise ValidationError("URL must be an absolute http(s) URL")

    if host not in ALLOWED_HOSTS:
        raise ValidationError(f"Unsupported host: {host}")

    video_id = extract_video_id(parts.path)
    handle_match = _HANDLE_RE.search(parts.path)
    handle = handle_match.group(1) if handle_match else None

    if video_id is None and handle is None:
        raise ValidationError("URL does not point to a video")

    return SourceVideo(url=url, host=host, video_id=video_id, handle=handle)

