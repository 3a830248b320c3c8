"""Per-client fixed-window rate limiter.

The limiter owns the only state shared across requests. It is created once by
the application container and injected into the download router.

This is a fixed-window counter, not a sliding window: a client that bursts at
the end of one window and again at the start of the next can pass up to
``2 * max_requests`` requests within ``window_seconds``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from app.errors import RateLimitExceeded
from app.models.domain import RateLimitEntry

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request counter keyed by client identifier."""

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 5,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            window_seconds: Window duration.
            max_requests: Requests admitted per client per window.
            clock: Monotonic time source, injectable for tests.
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")

        self.window_seconds = float(window_seconds)
        self.max_requests = int(max_requests)
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def hit(self, client_id: str) -> RateLimitEntry:
        """Count one request for ``client_id``.

        Returns:
            A copy of the client's entry after admission.

        Raises:
            RateLimitExceeded: If the client already used up the window.
                The stored entry is left untouched.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(client_id)

            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(count=1, reset_time=now + self.window_seconds)
                self._entries[client_id] = entry
                return entry.model_copy()

            if entry.count < self.max_requests:
                entry.count += 1
                return entry.model_copy()

            retry_after = max(0.0, entry.reset_time - now)

        logger.info(
            "Rate limit exceeded for %s (limit=%d, retry_after=%.1fs)",
            client_id,
            self.max_requests,
            retry_after,
        )
        raise RateLimitExceeded(
            f"Maximum {self.max_requests} requests per {self._window_label()} allowed",
            limit=self.max_requests,
            window_seconds=self.window_seconds,
            retry_after=retry_after,
        )

    def sweep(self) -> int:
        """Drop entries whose window has expired.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def get(self, client_id: str) -> RateLimitEntry | None:
        """Return a copy of the stored entry for ``client_id``, if any."""
        with self._lock:
            entry = self._entries.get(client_id)
            return entry.model_copy() if entry else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _window_label(self) -> str:
        if self.window_seconds == 60:
            return "minute"
        return f"{self.window_seconds:g} seconds"
