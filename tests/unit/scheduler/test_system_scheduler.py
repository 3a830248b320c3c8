"""Tests for SystemScheduler.

The rate-limit sweep runs on a short interval here; the limiter uses a fake
clock so entries can be expired without waiting a real window.
"""

import asyncio

from app.scheduler.system_scheduler import SystemScheduler
from app.services.rate_limiter import RateLimiter


class TestSystemScheduler:
    def test_interval_defaults_to_limiter_window(self, fake_clock):
        limiter = RateLimiter(window_seconds=90, max_requests=5, clock=fake_clock)

        scheduler = SystemScheduler(limiter)

        assert scheduler.interval_seconds == 90.0

    def test_run_sweep_removes_expired_entries(self, fake_clock):
        limiter = RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)
        limiter.hit("a")
        fake_clock.advance(30)
        limiter.hit("b")
        fake_clock.advance(31)

        removed = SystemScheduler(limiter).run_sweep()

        assert removed == 1
        assert limiter.get("a") is None
        assert limiter.get("b") is not None

    async def test_start_and_stop(self, fake_clock):
        limiter = RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)
        scheduler = SystemScheduler(limiter, interval_seconds=0.05)

        await scheduler.start()
        assert scheduler.is_running

        await scheduler.stop()
        assert not scheduler.is_running
        assert scheduler._sweep_task is None

    async def test_background_loop_sweeps(self, fake_clock):
        limiter = RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)
        limiter.hit("a")
        fake_clock.advance(61)
        scheduler = SystemScheduler(limiter, interval_seconds=0.05)

        await scheduler.start()
        try:
            for _ in range(50):
                if len(limiter) == 0:
                    break
                await asyncio.sleep(0.02)
        finally:
            await scheduler.stop()

        assert len(limiter) == 0

    async def test_double_start_is_ignored(self, fake_clock):
        limiter = RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)
        scheduler = SystemScheduler(limiter, interval_seconds=0.05)

        await scheduler.start()
        task = scheduler._sweep_task
        await scheduler.start()

        assert scheduler._sweep_task is task
        await scheduler.stop()

    async def test_stop_when_not_running_is_noop(self, fake_clock):
        scheduler = SystemScheduler(RateLimiter(clock=fake_clock))

        await scheduler.stop()

        assert not scheduler.is_running

    async def test_sweep_errors_do_not_kill_the_loop(self, fake_clock):
        limiter = RateLimiter(window_seconds=60, max_requests=5, clock=fake_clock)
        scheduler = SystemScheduler(limiter, interval_seconds=0.02)
        calls = []

        def flaky_sweep() -> int:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        limiter.sweep = flaky_sweep

        await scheduler.start()
        try:
            for _ in range(50):
                if len(calls) >= 2:
                    break
                await asyncio.sleep(0.02)
        finally:
            await scheduler.stop()

        assert len(calls) >= 2
