"""Shared test doubles."""

import httpx


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStream(httpx.AsyncByteStream):
    """Upstream body that yields some chunks, then drops the connection."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error or httpx.ReadError("connection reset by peer")
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise self.error

    async def aclose(self) -> None:
        self.closed = True


class TrackingStream(httpx.AsyncByteStream):
    """Upstream body that records whether it was closed."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks
        self.closed = False
        self.yielded = 0

    async def __aiter__(self):
        for chunk in self.chunks:
            self.yielded += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True
