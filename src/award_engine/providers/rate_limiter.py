"""Per-provider request budgets over sliding minute and hour windows."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple

from award_engine.errors import InvalidInputError

logger = logging.getLogger(__name__)

MINUTE_S = 60.0
HOUR_S = 3600.0


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    retry_after: Optional[float] = None


class _Window:
    """Timestamp log of admitted requests within the trailing ``span`` seconds."""

    __slots__ = ("span", "capacity", "_stamps")

    def __init__(self, span: float, capacity: int) -> None:
        self.span = span
        self.capacity = capacity
        self._stamps: Deque[float] = deque()

    def prune(self, now: float) -> None:
        horizon = now - self.span
        while self._stamps and self._stamps[0] <= horizon:
            self._stamps.popleft()

    def has_room(self) -> bool:
        return len(self._stamps) < self.capacity

    def wait_time(self, now: float) -> float:
        # Time until enough of the oldest entries age out to free one slot.
        overflow = len(self._stamps) - self.capacity
        return max(self._stamps[overflow] + self.span - now, 0.0)

    def record(self, now: float) -> None:
        self._stamps.append(now)

    def remaining(self) -> int:
        return max(self.capacity - len(self._stamps), 0)

    def clear(self) -> None:
        self._stamps.clear()


class RateLimiter:
    """Advisory limiter owned by exactly one provider.

    ``try_acquire`` never blocks: it either records the request in both windows
    or rejects it with the number of seconds until both windows have room.
    Budget decays continuously as individual requests age out of a window.
    """

    def __init__(
        self,
        provider_id: str,
        requests_per_minute: int,
        requests_per_hour: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if requests_per_minute <= 0 or requests_per_hour <= 0:
            raise InvalidInputError(f"Rate limits for '{provider_id}' must be positive", field="rate_limit")
        self.provider_id = provider_id
        self._clock = clock
        self._minute = _Window(MINUTE_S, requests_per_minute)
        self._hour = _Window(HOUR_S, requests_per_hour)
        self._lock = threading.Lock()

    @property
    def requests_per_minute(self) -> int:
        return self._minute.capacity

    @property
    def requests_per_hour(self) -> int:
        return self._hour.capacity

    def try_acquire(self) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            self._minute.prune(now)
            self._hour.prune(now)
            exhausted = [window for window in (self._minute, self._hour) if not window.has_room()]
            if not exhausted:
                self._minute.record(now)
                self._hour.record(now)
                return RateLimitDecision(allowed=True)
            retry_after = max(window.wait_time(now) for window in exhausted)

        logger.debug("Rate limit hit for %s; retry after %.2fs", self.provider_id, retry_after)
        return RateLimitDecision(allowed=False, retry_after=retry_after)

    def remaining(self) -> Tuple[int, int]:
        """Return the (per-minute, per-hour) budget still available."""
        with self._lock:
            now = self._clock()
            self._minute.prune(now)
            self._hour.prune(now)
            return self._minute.remaining(), self._hour.remaining()

    def reset(self) -> None:
        with self._lock:
            self._minute.clear()
            self._hour.clear()


__all__ = ["RateLimitDecision", "RateLimiter"]
