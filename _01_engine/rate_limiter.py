"""Sliding-window rate limiting keyed by action and identifier."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from _01_engine import rules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: float
    error: str | None = None


@dataclass(frozen=True)
class CreationLimitResult:
    allowed: bool
    error: str | None = None
    minute_remaining: int | None = None
    day_remaining: int | None = None
    reset_time: float | None = None


class RateLimitBackend(ABC):
    """Storage for request timestamps."""

    @abstractmethod
    def admit(self, key: str, now: float, window_seconds: float, max_requests: int) -> tuple[bool, int]:
        """Atomically drop entries older than the window, count and maybe record.

        Returns:
            ``(admitted, count_before)`` where ``count_before`` is the number of
            live entries seen before this request.
        """
        ...


class InMemoryRateLimitBackend(RateLimitBackend):
    """Simple in-memory timestamp store."""

    def __init__(self) -> None:
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = Lock()

    def admit(self, key: str, now: float, window_seconds: float, max_requests: int) -> tuple[bool, int]:
        with self._lock:
            # Clean old entries
            live = [t for t in self._requests[key] if now - t < window_seconds]
            count = len(live)
            if count >= max_requests:
                self._requests[key] = live
                return False, count
            live.append(now)
            self._requests[key] = live
            return True, count


class SlidingWindowRateLimiter:
    """Rate limiter that fails open when its backend is unavailable."""

    def __init__(
        self,
        backend: RateLimitBackend | None = None,
        *,
        clock: Callable[[], float] = time.time,
        minute_window_seconds: int = rules.CREATION_MINUTE_WINDOW_SECONDS,
        minute_max: int = rules.CREATION_MINUTE_MAX,
        day_window_seconds: int = rules.CREATION_DAY_WINDOW_SECONDS,
        day_max: int = rules.CREATION_DAY_MAX,
    ):
        self._backend = backend if backend is not None else InMemoryRateLimitBackend()
        self._clock = clock
        self._minute_window = minute_window_seconds
        self._minute_max = minute_max
        self._day_window = day_window_seconds
        self._day_max = day_max

    def check(self, identifier: str, action: str, window_seconds: float, max_requests: int) -> RateLimitResult:
        """Check and record one request for ``identifier`` under ``action``."""
        now = self._clock()
        reset_time = now + window_seconds
        key = f"rate_limit:{action}:{identifier}"
        try:
            admitted, count = self._backend.admit(key, now, window_seconds, max_requests)
        except Exception:
            logger.exception("Rate limiter backend failed for %s; allowing request", key)
            return RateLimitResult(
                allowed=True,
                remaining=0,
                reset_time=reset_time,
                error="Rate limiter unavailable",
            )

        if not admitted:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_time=reset_time,
                error=(
                    f"Rate limit exceeded. Maximum {max_requests} requests per "
                    f"{int(window_seconds)} seconds."
                ),
            )
        return RateLimitResult(allowed=True, remaining=max_requests - count - 1, reset_time=reset_time)

    def check_challenge_creation(self, user_id: str) -> CreationLimitResult:
        """Apply the per-minute window, then the per-day window."""
        minute = self.check(user_id, "challenge-creation-minute", self._minute_window, self._minute_max)
        if not minute.allowed:
            logger.info("Challenge creation rate limited (minute) for %s", user_id)
            return CreationLimitResult(
                allowed=False,
                error="Too many challenges created recently. Please wait a minute before creating another.",
                minute_remaining=minute.remaining,
                reset_time=minute.reset_time,
            )

        day = self.check(user_id, "challenge-creation-day", self._day_window, self._day_max)
        if not day.allowed:
            logger.info("Challenge creation rate limited (day) for %s", user_id)
            return CreationLimitResult(
                allowed=False,
                error=f"Daily challenge creation limit reached. You can create {self._day_max} challenges per day.",
                day_remaining=day.remaining,
                reset_time=day.reset_time,
            )

        return CreationLimitResult(
            allowed=True,
            error=minute.error or day.error,
            minute_remaining=minute.remaining,
            day_remaining=day.remaining,
        )


__all__ = [
    "CreationLimitResult",
    "InMemoryRateLimitBackend",
    "RateLimitBackend",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
]
