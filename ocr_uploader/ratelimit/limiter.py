"""Fixed-window request limiter keyed by client IP.

The counter store is injected so a deployment can swap the in-memory store
for a shared one. ``InMemoryWindowedCounter`` is process-local and its
read-increment-write is not atomic: concurrent requests from one client may
undercount. That is acceptable for an advisory limiter and nothing else
should depend on it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class WindowedCounterStore(Protocol):
    def increment(self, key: str, window: int) -> int:
        """Add one to *key* in *window* and return the new count."""
        ...


class InMemoryWindowedCounter:
    def __init__(self) -> None:
        self._counts: dict[str, tuple[int, int]] = {}
        self._latest_window: int | None = None

    def increment(self, key: str, window: int) -> int:
        if self._latest_window is None or window > self._latest_window:
            # New window: counts from earlier windows can never matter again
            self._counts = {k: v for k, v in self._counts.items() if v[0] >= window}
            self._latest_window = window

        current_window, count = self._counts.get(key, (window, 0))
        if current_window != window:
            count = 0
        count += 1
        self._counts[key] = (window, count)
        return count

    def __len__(self) -> int:
        return len(self._counts)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    limit: int
    retry_after: int


class RateLimiter:
    def __init__(
        self,
        store: WindowedCounterStore,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1 or window_seconds < 1:
            raise ValueError("limit and window_seconds must be positive")
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock

    def hit(self, client_ip: str) -> RateLimitDecision:
        now = self._clock()
        window = int(now // self._window_seconds)
        count = self._store.increment(client_ip, window)
        retry_after = max(1, int((window + 1) * self._window_seconds - now))

        decision = RateLimitDecision(
            allowed=count <= self._limit,
            count=count,
            limit=self._limit,
            retry_after=retry_after,
        )
        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                extra={"client_ip": client_ip, "count": count, "limit": self._limit},
            )
        return decision
