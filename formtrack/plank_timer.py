from __future__ import annotations

import logging
import threading
from typing import Optional

from .clock import MonotonicClock
from .utils import format_elapsed

logger = logging.getLogger(__name__)


class PlankTimer:
    """Accumulates plank hold time while form is valid.

    Two sources drive it: ``update_form`` after every analysed frame and ``tick``
    from the wall-clock ticker. Time spent with bad form, externally paused or
    stopped is collected in ``paused_accumulated_ms``; at most one pause interval
    is open at a time (``pause_started_at``), so form pauses and user pauses
    overlap without being subtracted twice.
    """

    def __init__(self, clock=None, stats_store=None, lock=None) -> None:
        self.clock = clock or MonotonicClock()
        self.stats_store = stats_store
        self._lock = lock or threading.RLock()
        self.running = False
        self.paused = False
        self._clear()

    def _clear(self) -> None:
        self.start_time: Optional[float] = None
        self.elapsed_ms = 0.0
        self.paused_accumulated_ms = 0.0
        self.pause_started_at: Optional[float] = None
        self.form_valid = False
        self.already_persisted = False
        self.persisted_ms = 0.0

    @property
    def counting(self) -> bool:
        return (
            self.running
            and not self.paused
            and self.form_valid
            and self.start_time is not None
            and self.pause_started_at is None
        )

    @property
    def display(self) -> str:
        return format_elapsed(self.elapsed_ms)

    def _advance(self, now: float) -> None:
        if not self.counting:
            return
        self.elapsed_ms = max(now - self.start_time - self.paused_accumulated_ms, 0.0)
        if self.elapsed_ms > self.persisted_ms:
            self.already_persisted = False

    def _open_pause(self, now: float) -> None:
        if self.pause_started_at is None and self.start_time is not None:
            self.pause_started_at = now

    def _close_pause(self, now: float) -> None:
        if self.pause_started_at is not None:
            self.paused_accumulated_ms += now - self.pause_started_at
            self.pause_started_at = None

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self.running = True
            self.paused = False
            # The next valid frame starts or resumes counting.
            self.form_valid = False

    def update_form(self, valid: bool) -> None:
        with self._lock:
            now = self.clock.now_ms()
            was_valid = self.form_valid
            active = self.running and not self.paused
            if valid and not was_valid and active:
                if self.start_time is None:
                    self.start_time = now
                    self.paused_accumulated_ms = 0.0
                    self.pause_started_at = None
                    self.already_persisted = False
                    self.persisted_ms = 0.0
                    logger.info("Plank timer started")
                else:
                    self._close_pause(now)
            elif was_valid and not valid and active:
                self._advance(now)
                self._open_pause(now)
            self.form_valid = valid

    def tick(self) -> float:
        with self._lock:
            if self.running and not self.paused:
                self._advance(self.clock.now_ms())
            return self.elapsed_ms

    def pause(self) -> None:
        with self._lock:
            if not self.running or self.paused:
                return
            now = self.clock.now_ms()
            self._advance(now)
            self.paused = True
            self._open_pause(now)

    def resume(self) -> None:
        with self._lock:
            if not self.paused:
                return
            self.paused = False
            if self.form_valid:
                self._close_pause(self.clock.now_ms())

    def stop(self) -> float:
        """Stop the run and persist its time; a later ``start`` resumes the same hold."""
        with self._lock:
            if self.running and not self.paused:
                now = self.clock.now_ms()
                self._advance(now)
                self._open_pause(now)
            self.running = False
            self.paused = False
            self.form_valid = False
            return self.flush()

    def flush(self) -> float:
        """Add unpersisted hold time to the stats store; returns the seconds added."""
        with self._lock:
            unpersisted_ms = self.elapsed_ms - self.persisted_ms
            if self.already_persisted or unpersisted_ms <= 0:
                return 0.0
            if self.stats_store is None:
                logger.debug("No stats store, plank time not persisted")
                return 0.0
            seconds = unpersisted_ms / 1000.0
            stats = self.stats_store.get_user_stats()
            stats["planks"] = (stats.get("planks") or 0) + seconds
            self.stats_store.save_user_stats(stats)
            self.persisted_ms = self.elapsed_ms
            self.already_persisted = True
            logger.info("Persisted %.1fs of plank time", seconds)
            return seconds

    def reset(self) -> float:
        with self._lock:
            seconds = self.flush()
            self._clear()
            return seconds

