"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: all shared state lives in a WindowStore with its own lock.
- One limiter per store: the sweep prunes with this limiter's window.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, Decision, UsageStatus
from app.adapters.rate_limit.sweeper import PeriodicSweeper
from app.adapters.rate_limit.window_store import WindowStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key inside a trailing window.

    A request is admitted while fewer than ``limit`` requests from the same
    key were admitted in the last ``window_ms`` milliseconds. The reported
    reset time is always one full window after the decision, not the expiry
    of the oldest recorded request.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int = 10,
        window_ms: int = 60_000,
        sweep_interval_ms: int = 60_000,
        store: WindowStore | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the limiter.

        The background sweeper is created here but only runs after ``start()``.

        Args:
            limit: Maximum number of admitted requests per window.
            window_ms: Size of the trailing window in milliseconds.
            sweep_interval_ms: How often idle identities are reclaimed.
            store: Shared store; a private one is created when omitted.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If limit, window_ms or sweep_interval_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if sweep_interval_ms < 1:
            raise ValueError("sweep_interval_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._sweep_interval_ms = sweep_interval_ms
        self._store = store if store is not None else WindowStore()
        self._clock = clock
        self._sweeper = PeriodicSweeper(self.sweep, interval_ms=sweep_interval_ms)

    def __enter__(self) -> "SlidingWindowRateLimiter":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def sweep_interval_ms(self) -> int:
        return self._sweep_interval_ms

    @property
    def store(self) -> WindowStore:
        return self._store

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper.running

    @staticmethod
    def _validate_identity(identity: str) -> None:
        if not identity:
            raise ValueError("identity must be a non-empty string")

    def admit(self, identity: str) -> Decision:
        """Check the quota for ``identity`` and record the request if allowed.

        Args:
            identity: Unique identifier for rate limiting (e.g., client IP).

        Returns:
            Decision with the admission outcome and quota metadata.

        Raises:
            ValueError: If identity is empty.
        """
        self._validate_identity(identity)

        now = self._clock()
        allowed, count = self._store.check_and_record(
            identity, now, self._window_ms, self._limit
        )
        remaining = max(0, self._limit - count) if allowed else 0

        return Decision(
            allowed=allowed,
            remaining=remaining,
            limit=self._limit,
            reset_at=now + self._window_ms,
            window_ms=self._window_ms,
        )

    def status(self, identity: str) -> UsageStatus:
        """Report current usage for ``identity`` without consuming quota."""
        self._validate_identity(identity)

        current, remaining = self._store.usage(
            identity, self._clock(), self._window_ms, self._limit
        )
        return UsageStatus(current=current, limit=self._limit, remaining=remaining)

    def sweep(self) -> int:
        """Reclaim identities that have been quiescent for a full window."""
        removed = self._store.sweep(self._clock(), self._window_ms)
        if removed:
            logger.debug(
                "rate_limit.reclaimed",
                extra={"removed": removed, "identities": len(self._store)},
            )
        return removed

    def start(self) -> None:
        self._sweeper.start()

    def close(self) -> None:
        self._sweeper.stop()

    def stats(self) -> dict[str, int | bool]:
        return {
            **self._store.stats(),
            "limit": self._limit,
            "window_ms": self._window_ms,
            "sweeper_running": self._sweeper.running,
        }
