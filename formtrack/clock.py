"""Clocks and the periodic tick source that drives the plank timer."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MonotonicClock:
    def now_ms(self) -> float:
        return time.monotonic() * 1000.0


class ManualClock:
    """Clock moved explicitly; used for replays and tests."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)

    def now_ms(self) -> float:
        return self._now_ms

    def set(self, now_ms: float) -> None:
        if now_ms < self._now_ms:
            raise ValueError(f"Clock cannot move backwards ({now_ms} < {self._now_ms})")
        self._now_ms = float(now_ms)

    def advance(self, delta_ms: float) -> None:
        self.set(self._now_ms + delta_ms)


class PeriodicTicker:
    """Calls ``callback`` every ``interval_s`` seconds on a daemon thread."""

    def __init__(self, interval_s: float = 0.1) -> None:
        self.interval_s = interval_s
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, callback: Callable[[], None]) -> None:
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(callback, self._stop_event), name="plank-ticker", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop ticking and wait for an in-flight callback to finish.

        Must not be called while holding a lock the callback needs.
        """
        thread = self._thread
        self._stop_event.set()
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, callback: Callable[[], None], stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_s):
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")
