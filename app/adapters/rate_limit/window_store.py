"""Thread-safe store of per-identity request timestamps.

Timestamps are pruned lazily on every access; idle identities are reclaimed by
``WindowStore.sweep``, which a background sweeper calls periodically.

All times are UNIX epoch milliseconds.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass
class CallerRecord:
    """Request history for a single identity.

    ``first_seen`` marks record creation and is never updated afterwards.
    """

    identity: str
    first_seen: int
    timestamps: list[int] = field(default_factory=list)

    def prune(self, window_start: int) -> int:
        """Drop timestamps older than ``window_start`` and return the count left."""
        if self.timestamps:
            self.timestamps = [t for t in self.timestamps if t >= window_start]
        return len(self.timestamps)


class WindowStore:
    """Mapping of identity -> CallerRecord guarded by a single short-held lock.

    The lock is taken once per operation and covers one identity only, so
    callers with different identities contend for a few microseconds at most.
    The raw mapping is never exposed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, CallerRecord] = {}
        self._sweeps = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._records

    def check_and_record(
        self, identity: str, now: int, window_ms: int, limit: int
    ) -> tuple[bool, int]:
        """Atomically prune, compare against ``limit`` and record the request.

        Args:
            identity: Caller identity.
            now: Current instant.
            window_ms: Trailing window size.
            limit: Max requests per window.

        Returns:
            ``(True, count_before + 1)`` when admitted, otherwise
            ``(False, count_before)``.
        """

        window_start = now - window_ms
        with self._lock:
            record = self._records.get(identity)
            if record is None:
                record = CallerRecord(identity=identity, first_seen=now)
                self._records[identity] = record

            count_before = record.prune(window_start)
            if count_before < limit:
                record.timestamps.append(now)
                return True, count_before + 1
            return False, count_before

    def usage(self, identity: str, now: int, window_ms: int, limit: int) -> tuple[int, int]:
        """Return ``(current, remaining)`` without recording a request.

        Unknown identities are reported as unused and no record is created.
        """

        with self._lock:
            record = self._records.get(identity)
            if record is None:
                return 0, limit
            current = record.prune(now - window_ms)
        return current, max(0, limit - current)

    def sweep(self, now: int, window_ms: int) -> int:
        """Prune every record and drop the quiescent ones.

        A record is removed only if, under the lock, it has no timestamps left
        and was created before the current window started. Keys are snapshotted
        first and each one is re-validated with its own short lock hold.

        Returns:
            Number of records removed.
        """

        window_start = now - window_ms
        with self._lock:
            identities = list(self._records)

        removed = 0
        for identity in identities:
            with self._lock:
                record = self._records.get(identity)
                if record is None:
                    continue
                if record.prune(window_start) == 0 and record.first_seen < window_start:
                    del self._records[identity]
                    removed += 1

        with self._lock:
            self._sweeps += 1
            self._evictions += removed
        return removed

    def stats(self) -> dict[str, int]:
        """Return lightweight store metrics without exposing identities."""

        with self._lock:
            return {
                "identities": len(self._records),
                "tracked_requests": sum(len(r.timestamps) for r in self._records.values()),
                "sweeps": self._sweeps,
                "evictions": self._evictions,
            }
