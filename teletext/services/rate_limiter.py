"""
RateLimiter - per-source admission control.

Policies:
- SlidingWindowPolicy: admit while fewer than N requests fall inside the
  trailing window
- DailyCounterPolicy: admit while today's count is below the daily budget;
  the count resets when the calendar date changes

``record`` must be called once per attempted request regardless of its
outcome. ``try_acquire`` performs check and record as one atomic step.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import date, datetime, time, timedelta
from typing import Any, Callable

from loguru import logger

Clock = Callable[[], datetime]


class RatePolicy(ABC):
    """Admission policy for a single source."""

    @abstractmethod
    def can_proceed(self, now: datetime) -> bool: ...

    @abstractmethod
    def record(self, now: datetime) -> None: ...

    @abstractmethod
    def time_until_reset(self, now: datetime) -> timedelta: ...

    @abstractmethod
    def remaining(self, now: datetime) -> int: ...

    @abstractmethod
    def reset(self) -> None: ...


class SlidingWindowPolicy(RatePolicy):
    """Keep request instants within the last ``window``."""

    def __init__(self, window: timedelta, max_per_window: int):
        if max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")
        self.window = window
        self.max_per_window = max_per_window
        self._timestamps: deque[datetime] = deque()

    def _prune(self, now: datetime) -> None:
        cutoff = now - self.window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def can_proceed(self, now: datetime) -> bool:
        self._prune(now)
        return len(self._timestamps) < self.max_per_window

    def record(self, now: datetime) -> None:
        self._prune(now)
        self._timestamps.append(now)

    def time_until_reset(self, now: datetime) -> timedelta:
        self._prune(now)
        if not self._timestamps:
            return timedelta(0)
        return max(timedelta(0), self._timestamps[0] + self.window - now)

    def remaining(self, now: datetime) -> int:
        self._prune(now)
        return max(0, self.max_per_window - len(self._timestamps))

    def reset(self) -> None:
        self._timestamps.clear()

    def __repr__(self) -> str:
        return (
            f"SlidingWindowPolicy(window={self.window.total_seconds()}s, "
            f"max={self.max_per_window})"
        )


class DailyCounterPolicy(RatePolicy):
    """Fixed daily budget keyed by calendar date."""

    def __init__(self, max_per_day: int):
        if max_per_day < 1:
            raise ValueError("max_per_day must be at least 1")
        self.max_per_day = max_per_day
        self.count = 0
        self.window_start: date | None = None

    def _roll(self, now: datetime) -> None:
        today = now.date()
        if self.window_start != today:
            self.window_start = today
            self.count = 0

    def can_proceed(self, now: datetime) -> bool:
        self._roll(now)
        return self.count < self.max_per_day

    def record(self, now: datetime) -> None:
        self._roll(now)
        self.count += 1

    def time_until_reset(self, now: datetime) -> timedelta:
        self._roll(now)
        if self.count < self.max_per_day:
            return timedelta(0)
        midnight = datetime.combine(now.date() + timedelta(days=1), time.min)
        if now.tzinfo is not None:
            midnight = midnight.replace(tzinfo=now.tzinfo)
        return midnight - now

    def remaining(self, now: datetime) -> int:
        self._roll(now)
        return max(0, self.max_per_day - self.count)

    def reset(self) -> None:
        self.count = 0
        self.window_start = None

    def __repr__(self) -> str:
        return f"DailyCounterPolicy(max={self.max_per_day})"


class RateLimiter:
    """
    Registry of rate policies keyed by source id.

    Usage:
        limiter = RateLimiter()
        limiter.configure("coinlore", SlidingWindowPolicy(timedelta(minutes=1), 30))

        if limiter.try_acquire("coinlore"):
            await make_request()

    Sources without a policy are unlimited.
    """

    def __init__(self, clock: Clock = datetime.now):
        self._policies: dict[str, RatePolicy] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def configure(self, source: str, policy: RatePolicy | None) -> None:
        with self._lock:
            if policy is None:
                self._policies.pop(source, None)
            else:
                self._policies[source] = policy
        logger.debug(f"Rate policy for '{source}': {policy!r}")

    def get_policy(self, source: str) -> RatePolicy | None:
        return self._policies.get(source)

    def can_proceed(self, source: str) -> bool:
        policy = self._policies.get(source)
        if policy is None:
            return True
        with self._lock:
            return policy.can_proceed(self._clock())

    def record(self, source: str) -> None:
        policy = self._policies.get(source)
        if policy is None:
            return
        with self._lock:
            policy.record(self._clock())

    def try_acquire(self, source: str) -> bool:
        """Atomically check admission and record the request if admitted."""
        policy = self._policies.get(source)
        if policy is None:
            return True
        with self._lock:
            now = self._clock()
            if not policy.can_proceed(now):
                logger.warning(f"Rate limit reached for '{source}'")
                return False
            policy.record(now)
            return True

    def time_until_reset(self, source: str) -> timedelta:
        policy = self._policies.get(source)
        if policy is None:
            return timedelta(0)
        with self._lock:
            return policy.time_until_reset(self._clock())

    def remaining(self, source: str) -> int | None:
        """Requests left in the current window, None when unlimited."""
        policy = self._policies.get(source)
        if policy is None:
            return None
        with self._lock:
            return policy.remaining(self._clock())

    def reset(self, source: str | None = None) -> None:
        with self._lock:
            if source is None:
                for policy in self._policies.values():
                    policy.reset()
            elif source in self._policies:
                self._policies[source].reset()

    def get_status(self) -> dict[str, dict[str, Any]]:
        now = self._clock()
        with self._lock:
            return {
                source: {
                    "policy": repr(policy),
                    "can_proceed": policy.can_proceed(now),
                    "remaining": policy.remaining(now),
                    "reset_in": policy.time_until_reset(now).total_seconds(),
                }
                for source, policy in self._policies.items()
            }
