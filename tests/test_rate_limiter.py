from __future__ import annotations

import threading

import pytest

from award_engine.errors import InvalidInputError
from award_engine.providers.rate_limiter import RateLimiter


class _FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_minute_budget_admits_exactly_capacity() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 30, 1000, clock=clock)

    decisions = [limiter.try_acquire() for _ in range(30)]
    assert all(decision.allowed for decision in decisions)

    rejected = limiter.try_acquire()
    assert not rejected.allowed
    assert rejected.retry_after == pytest.approx(60.0)


def test_retry_after_shrinks_as_time_passes() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 2, 1000, clock=clock)
    limiter.try_acquire()
    clock.advance(10)
    limiter.try_acquire()
    clock.advance(15)

    decision = limiter.try_acquire()
    assert not decision.allowed
    assert decision.retry_after == pytest.approx(35.0)


def test_budget_decays_request_by_request() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 30, 1000, clock=clock)
    assert limiter.try_acquire().allowed
    clock.advance(30)
    for _ in range(29):
        assert limiter.try_acquire().allowed

    clock.advance(29)
    assert not limiter.try_acquire().allowed

    # The first request ages out of the minute window; the other 29 do not.
    clock.advance(1)
    assert limiter.try_acquire().allowed
    assert not limiter.try_acquire().allowed


def test_hour_window_enforced_independently() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 100, 5, clock=clock)
    for _ in range(5):
        assert limiter.try_acquire().allowed
        clock.advance(61)

    decision = limiter.try_acquire()
    assert not decision.allowed
    assert decision.retry_after == pytest.approx(3600 - 5 * 61)


def test_rejections_do_not_consume_budget() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 1, 1000, clock=clock)
    assert limiter.try_acquire().allowed
    for _ in range(10):
        assert not limiter.try_acquire().allowed

    assert limiter.remaining() == (0, 999)
    clock.advance(60)
    assert limiter.remaining() == (1, 999)


def test_reset_clears_both_windows() -> None:
    limiter = RateLimiter("flight:seats-aero", 1, 1, clock=_FakeClock())
    limiter.try_acquire()
    limiter.reset()
    assert limiter.try_acquire().allowed


@pytest.mark.parametrize("per_minute, per_hour", [(0, 10), (10, 0), (-1, 5)])
def test_non_positive_limits_rejected(per_minute: int, per_hour: int) -> None:
    with pytest.raises(InvalidInputError):
        RateLimiter("flight:seats-aero", per_minute, per_hour)


def test_concurrent_threads_never_exceed_capacity() -> None:
    clock = _FakeClock()
    limiter = RateLimiter("flight:seats-aero", 25, 1000, clock=clock)
    workers = 64
    barrier = threading.Barrier(workers)
    decisions: list[bool] = []
    decisions_lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        allowed = limiter.try_acquire().allowed
        with decisions_lock:
            decisions.append(allowed)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(decisions) == workers
    assert decisions.count(True) == 25
    assert limiter.remaining() == (0, 975)
