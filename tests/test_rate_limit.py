"""Fixed-window rate limiter tests."""
from __future__ import annotations

import pytest

from ocr_uploader.ratelimit.limiter import InMemoryWindowedCounter, RateLimiter


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _limiter(clock: FakeClock, limit: int = 3, window: int = 60) -> RateLimiter:
    return RateLimiter(InMemoryWindowedCounter(), limit=limit, window_seconds=window, clock=clock)


def test_allows_up_to_limit_then_blocks() -> None:
    limiter = _limiter(FakeClock())
    decisions = [limiter.hit("10.0.0.1") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert decisions[-1].count == 4


def test_clients_are_counted_separately() -> None:
    limiter = _limiter(FakeClock(), limit=1)
    assert limiter.hit("10.0.0.1").allowed is True
    assert limiter.hit("10.0.0.2").allowed is True
    assert limiter.hit("10.0.0.1").allowed is False


def test_counter_resets_in_next_window() -> None:
    clock = FakeClock(now=1_200.0)
    limiter = _limiter(clock, limit=1)
    assert limiter.hit("10.0.0.1").allowed is True
    assert limiter.hit("10.0.0.1").allowed is False

    clock.now += 60
    assert limiter.hit("10.0.0.1").allowed is True


def test_retry_after_points_to_window_end() -> None:
    limiter = _limiter(FakeClock(now=1_210.0), limit=1)
    limiter.hit("10.0.0.1")
    decision = limiter.hit("10.0.0.1")
    # window [1200, 1260)
    assert decision.retry_after == 50


def test_store_drops_stale_windows() -> None:
    store = InMemoryWindowedCounter()
    store.increment("a", 1)
    store.increment("b", 1)
    assert len(store) == 2

    store.increment("c", 2)
    assert len(store) == 1
    assert store.increment("a", 2) == 1


@pytest.mark.parametrize("limit, window", [(0, 60), (5, 0)])
def test_rejects_non_positive_configuration(limit: int, window: int) -> None:
    with pytest.raises(ValueError):
        RateLimiter(InMemoryWindowedCounter(), limit=limit, window_seconds=window)
