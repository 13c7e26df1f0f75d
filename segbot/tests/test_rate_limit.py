from __future__ import annotations

from utils.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_rate_limiter_blocks_sixth_request_in_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    results = []
    for _ in range(6):
        results.append(limiter.admit(123))
        clock.advance(0.1)

    assert results == [True, True, True, True, True, False]


def test_rate_limiter_recovers_after_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    for _ in range(5):
        assert limiter.admit(123)
    assert limiter.admit(123) is False

    clock.advance(60)
    assert limiter.admit(123) is True


def test_rejected_requests_do_not_extend_the_window() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)
    assert limiter.admit("k")
    clock.advance(5)
    assert limiter.admit("k") is False
    clock.advance(5)
    assert limiter.admit("k") is True


def test_users_are_limited_independently() -> None:
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    assert limiter.admit(1)
    assert limiter.admit(2)
    assert limiter.admit(1) is False


def test_sweep_drops_idle_users() -> None:
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.admit(1)
    clock.advance(30)
    limiter.admit(2)

    clock.advance(31)
    assert limiter.sweep() == 1
    assert limiter.tracked_users == 1
    assert limiter.sweep(now=clock.now + 60) == 1
    assert limiter.tracked_users == 0
