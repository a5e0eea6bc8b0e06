"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class Decision:
    """Result of an admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        remaining: Remaining requests in the current window (0 when denied).
        limit: Max requests per window.
        reset_at: UNIX epoch milliseconds when the window is estimated to reset.
        window_ms: Window size in milliseconds.
    """

    allowed: bool
    remaining: int
    limit: int
    reset_at: int
    window_ms: int

    @property
    def reset_at_datetime(self) -> datetime:
        """Reset instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self.reset_at / 1000, tz=timezone.utc)

    @property
    def retry_after_seconds(self) -> int | None:
        """Suggested wait in whole seconds when denied, None when allowed.

        The reset estimate is always one full window after the decision, so
        the wait is the window rounded up to the next second.
        """
        if self.allowed:
            return None
        return max(0, int(math.ceil(self.window_ms / 1000)))


@dataclass(frozen=True)
class UsageStatus:
    """Read-only usage snapshot for one identity."""

    current: int
    limit: int
    remaining: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @property
    @abstractmethod
    def limit(self) -> int:
        """Max admitted requests per identity per window."""
        raise NotImplementedError

    @property
    @abstractmethod
    def window_ms(self) -> int:
        """Trailing window size in milliseconds."""
        raise NotImplementedError

    @abstractmethod
    def admit(self, identity: str) -> Decision:
        """Decide whether a request from ``identity`` may proceed.

        Args:
            identity: Unique caller identifier (e.g., client IP address).

        Returns:
            Decision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def status(self, identity: str) -> UsageStatus:
        """Report usage for ``identity`` without consuming quota."""
        raise NotImplementedError

    def start(self) -> None:
        """Start background maintenance, if the backend needs any."""

    def close(self) -> None:
        """Stop background maintenance, if the backend runs any."""

    def stats(self) -> dict[str, int | bool]:
        """Return lightweight backend metrics."""
        return {}
