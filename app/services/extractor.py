"""Direct media URL resolution.

A resolver turns a validated source page URL into a direct, time-limited media
URL. The relay and router only depend on the ``MediaResolver`` protocol, so the
backend (external yt-dlp process or in-process yt_dlp library) can be swapped
through configuration.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlsplit

import yt_dlp
from yt_dlp.utils import DownloadError

from app.enums import ResolverBackend
from app.errors import ExtractionError, ExtractionTimeout
from app.models.domain import ResolvedMedia
from app.observability.trace_logging import trace_event

if TYPE_CHECKING:
    from app.config import RelayConfig

logger = logging.getLogger(__name__)

# yt-dlp prefixes non-fatal diagnostics with this marker.
ADVISORY_MARKER = "WARNING"

DEFAULT_EXTRACTOR_ARGS: tuple[str, ...] = ("-g", "--no-warnings")


class MediaResolver(Protocol):
    """Resolve a source page URL to a direct media URL."""

    async def resolve(self, source_url: str) -> ResolvedMedia: ...


def require_media_url(output: str) -> str:
    """Check that resolver output is exactly one absolute http(s) URL.

    Raises:
        ExtractionError: If the output is empty, spans several lines or is not
            a well-formed URL.
    """
    text = (output or "").strip()
    if not text:
        raise ExtractionError("Resolver returned no media URL")

    lines = text.splitlines()
    if len(lines) != 1:
        raise ExtractionError(f"Resolver returned {len(lines)} lines, expected a single URL")

    try:
        parts = urlsplit(text)
    except ValueError as e:
        raise ExtractionError(f"Resolver returned a malformed URL: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc or " " in text:
        raise ExtractionError("Resolver output is not a media URL")
    return text


def fatal_diagnostics(stderr: str) -> list[str]:
    """Return the stderr lines that are not advisories."""
    return [
        line.strip()
        for line in (stderr or "").splitlines()
        if line.strip() and ADVISORY_MARKER not in line
    ]


class SubprocessResolver:
    """Resolve media URLs by running an external extraction tool.

    The tool is invoked as ``<command> <args...> -- <source_url>`` and must
    print a single URL on stdout.
    """

    def __init__(
        self,
        command: str = "yt-dlp",
        *,
        args: Sequence[str] = DEFAULT_EXTRACTOR_ARGS,
        timeout: float = 30.0,
    ) -> None:
        self.command = command
        self.args = tuple(args)
        self.timeout = timeout

    async def resolve(self, source_url: str) -> ResolvedMedia:
        """Run the extraction tool for ``source_url``.

        Raises:
            ExtractionTimeout: The tool ran longer than ``timeout`` seconds.
            ExtractionError: Nonzero exit, fatal diagnostics or unusable output.
        """
        argv = [self.command, *self.args, "--", source_url]
        trace_event("extract.start", backend="subprocess", source_url=source_url)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            trace_event("extract.error", backend="subprocess", error=str(e))
            raise ExtractionError(f"Cannot start {self.command}: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            trace_event("extract.error", backend="subprocess", error="timeout")
            raise ExtractionTimeout(
                f"Video extraction timed out after {self.timeout:g}s"
            ) from None
        finally:
            # Timeout or request cancellation: never leave the child behind.
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if process.returncode != 0:
            detail = stderr.strip() or f"exit code {process.returncode}"
            trace_event("extract.error", backend="subprocess", error=detail)
            raise ExtractionError(f"Video extraction failed: {detail}")

        fatal = fatal_diagnostics(stderr)
        if fatal:
            trace_event("extract.error", backend="subprocess", error=fatal[0])
            raise ExtractionError(f"Video extraction failed: {fatal[0]}")

        media = ResolvedMedia(direct_url=require_media_url(stdout), source_url=source_url)
        trace_event("extract.done", backend="subprocess", direct_url=media.direct_url)
        return media


class LibraryResolver:
    """Resolve media URLs with the yt_dlp library in a worker thread.

    The worker thread cannot be interrupted; on timeout it is abandoned and
    finishes in the background.
    """

    def __init__(self, *, timeout: float = 30.0, options: dict[str, Any] | None = None) -> None:
        self.timeout = timeout
        self.options: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
        }
        if options:
            self.options.update(options)

    def _extract_url(self, source_url: str) -> str:
        with yt_dlp.YoutubeDL(self.options) as ydl:
            info = ydl.extract_info(source_url, download=False)
        if not isinstance(info, dict):
            return ""
        return str(info.get("url") or "")

    async def resolve(self, source_url: str) -> ResolvedMedia:
        trace_event("extract.start", backend="library", source_url=source_url)
        try:
            url = await asyncio.wait_for(
                asyncio.to_thread(self._extract_url, source_url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            trace_event("extract.error", backend="library", error="timeout")
            raise ExtractionTimeout(
                f"Video extraction timed out after {self.timeout:g}s"
            ) from None
        except DownloadError as e:
            trace_event("extract.error", backend="library", error=str(e))
            raise ExtractionError(f"Video extraction failed: {e}") from e

        media = ResolvedMedia(direct_url=require_media_url(url), source_url=source_url)
        trace_event("extract.done", backend="library", direct_url=media.direct_url)
        return media


def build_resolver(config: "RelayConfig") -> MediaResolver:
    """Create the resolver selected by ``config.resolver_backend``."""
    if config.resolver_backend == ResolverBackend.LIBRARY:
        logger.info("Using in-process yt_dlp resolver")
        return LibraryResolver(timeout=config.extractor_timeout_seconds)

    logger.info("Using subprocess resolver (%s)", config.extractor_command)
    return SubprocessResolver(
        config.extractor_command,
        timeout=config.extractor_timeout_seconds,
    )
