"""Unit tests for the fixed-window rate limiter."""

import threading

import pytest
from hypothesis import given, settings, strategies as st

from app.errors import RateLimitExceeded
from app.services.rate_limiter import RateLimiter
from tests.helpers import FakeClock


@pytest.fixture
def limiter(fake_clock) -> RateLimiter:
    return RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)


class TestRateLimiterHit:
    def test_first_request_creates_entry(self, limiter, fake_clock):
        entry = limiter.hit("1.2.3.4")
        assert entry.count == 1
        assert entry.reset_time == fake_clock.now + 60

    def test_admits_n_requests_in_window(self, limiter):
        counts = [limiter.hit("1.2.3.4").count for _ in range(5)]
        assert counts == [1, 2, 3, 4, 5]

    def test_rejects_request_over_limit(self, limiter):
        for _ in range(5):
            limiter.hit("1.2.3.4")

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.hit("1.2.3.4")

        assert exc_info.value.limit == 5
        assert "Maximum 5 requests per minute allowed" in str(exc_info.value)

    def test_rejection_does_not_mutate_entry(self, limiter):
        for _ in range(5):
            limiter.hit("1.2.3.4")
        before = limiter.get("1.2.3.4")

        for _ in range(3):
            with pytest.raises(RateLimitExceeded):
                limiter.hit("1.2.3.4")

        assert limiter.get("1.2.3.4") == before

    def test_retry_after_reflects_window_remaining(self, limiter, fake_clock):
        for _ in range(5):
            limiter.hit("1.2.3.4")
        fake_clock.advance(45)

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.hit("1.2.3.4")

        assert exc_info.value.retry_after == pytest.approx(15)

    def test_window_expiry_resets_counter(self, limiter, fake_clock):
        for _ in range(5):
            limiter.hit("1.2.3.4")

        fake_clock.advance(60.001)
        entry = limiter.hit("1.2.3.4")

        assert entry.count == 1
        assert entry.reset_time == pytest.approx(fake_clock.now + 60)

    def test_window_is_still_active_at_reset_time(self, limiter, fake_clock):
        for _ in range(5):
            limiter.hit("1.2.3.4")

        fake_clock.advance(60)
        with pytest.raises(RateLimitExceeded):
            limiter.hit("1.2.3.4")

    def test_clients_are_independent(self, limiter):
        for _ in range(5):
            limiter.hit("1.1.1.1")

        assert limiter.hit("2.2.2.2").count == 1

    def test_boundary_burst_is_allowed(self, limiter, fake_clock):
        """Fixed window: 2N requests can pass around a window boundary."""
        for _ in range(5):
            limiter.hit("1.2.3.4")
        fake_clock.advance(60.5)
        for _ in range(5):
            limiter.hit("1.2.3.4")

    def test_returned_entry_is_a_copy(self, limiter):
        entry = limiter.hit("1.2.3.4")
        entry.count = 100
        assert limiter.get("1.2.3.4").count == 1

    @pytest.mark.parametrize("window,limit", [(0, 5), (60, 0), (-1, 5)])
    def test_rejects_invalid_configuration(self, window, limit):
        with pytest.raises(ValueError):
            RateLimiter(window_seconds=window, max_requests=limit)

    def test_custom_window_label(self, fake_clock):
        limiter = RateLimiter(window_seconds=10, max_requests=1, clock=fake_clock)
        limiter.hit("a")
        with pytest.raises(RateLimitExceeded, match="per 10 seconds"):
            limiter.hit("a")


class TestRateLimiterSweep:
    def test_sweep_removes_only_expired(self, limiter, fake_clock):
        limiter.hit("old")
        fake_clock.advance(30)
        limiter.hit("new")
        fake_clock.advance(31)

        removed = limiter.sweep()

        assert removed == 1
        assert limiter.get("old") is None
        assert limiter.get("new") is not None
        assert len(limiter) == 1

    def test_sweep_on_empty_table(self, limiter):
        assert limiter.sweep() == 0


class TestRateLimiterConcurrency:
    def test_concurrent_hits_never_exceed_limit(self):
        limiter = RateLimiter(window_seconds=60, max_requests=50)
        admitted = []
        rejected = []

        def worker():
            for _ in range(20):
                try:
                    limiter.hit("shared")
                    admitted.append(1)
                except RateLimitExceeded:
                    rejected.append(1)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 50
        assert len(rejected) == 150
        assert limiter.get("shared").count == 50


class TestRateLimiterProperties:
    @given(
        limit=st.integers(min_value=1, max_value=20),
        extra=st.integers(min_value=1, max_value=10),
    )
    @settings(max_examples=50)
    def test_exactly_limit_requests_admitted_per_window(self, limit, extra):
        clock = FakeClock()
        limiter = RateLimiter(window_seconds=60, max_requests=limit, clock=clock)

        admitted = 0
        for _ in range(limit + extra):
            try:
                limiter.hit("client")
                admitted += 1
            except RateLimitExceeded:
                pass

        assert admitted == limit

        clock.advance(61)
        assert limiter.hit("client").count == 1
