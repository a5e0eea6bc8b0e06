"""Background thread that periodically reclaims idle rate limit state."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run a sweep callable every ``interval_ms`` on a daemon thread.

    The loop runs regardless of request traffic and sleeps on an Event, so
    ``stop()`` interrupts the wait immediately instead of waiting out a full
    interval.
    """

    def __init__(
        self,
        sweep: Callable[[], int],
        *,
        interval_ms: int,
        name: str = "rate-limit-sweeper",
    ) -> None:
        if interval_ms < 1:
            raise ValueError("interval_ms must be >= 1")

        self._sweep = sweep
        self._interval_s = interval_ms / 1000
        self._name = name
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        """Start the sweeper thread. No-op if it is already running."""

        with self._lock:
            if self.running:
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name=self._name,
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self._interval_s},
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to exit and wait up to ``timeout`` seconds."""

        with self._lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None

        if thread is None:
            return
        thread.join(timeout)
        logger.info("rate_limit.sweeper_stopped", extra={"alive": thread.is_alive()})

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_s):
            try:
                removed = self._sweep()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
                continue
            logger.debug("rate_limit.sweep", extra={"removed": removed})
