"""Periodic background polling loop.

Used by every client-side view that keeps itself in sync with the order
store (customer tracking, admin board).  Each view owns one poller; pollers
never share threads, so a slow round-trip in one view cannot delay another.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class PeriodicPoller:
    """Run ``tick`` every ``interval`` seconds on a daemon thread.

    ``stop()`` sets the cancellation event and joins the thread, so once it
    returns no further tick will start.  A tick that raises is logged and the
    loop keeps going; the next interval retries.
    """

    def __init__(
        self,
        tick: Callable[[], None],
        interval: float,
        name: str = "poller",
    ) -> None:
        if interval <= 0:
            raise ValueError("Polling interval must be positive.")
        self._tick = tick
        self._interval = interval
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the loop.  The first tick fires after one interval."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name=self._name, daemon=True
        )
        self._thread.start()
        logger.info("poller.started", poller=self._name, interval=self._interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the loop and wait for an in-flight tick to finish."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        logger.info("poller.stopped", poller=self._name)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._tick()
            except Exception:
                logger.exception("poller.tick_failed", poller=self._name)
