from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .clock import MonotonicClock
from .config import EXERCISES, SessionConfig
from .events import FormStatus, PlankElapsedUpdate, RepetitionCounted
from .feedback import NO_FEEDBACK, FormFeedback, synthesize_feedback
from .landmarks import Frame
from .plank_timer import PlankTimer
from .pose_analyzer import (
    AnalysisResult,
    HandsCheck,
    analyze_plank,
    analyze_pushup,
    analyze_squat,
    check_hands_on_floor,
)
from .rep_counter import RepCounter
from .smoothing import LandmarkSmoother

logger = logging.getLogger(__name__)

Listener = Callable[[object], None]


class ExerciseSession:
    """One user's live session for the selected exercise.

    Frames and timer ticks may arrive from different threads; both go through the
    same re-entrant lock. Control methods that stop the ticker do so before taking
    the lock, since the ticker thread needs it to finish its last tick. Events are
    delivered after the lock is released, so a listener may call ``reset`` or
    ``stop`` without deadlocking against the ticker.
    """

    def __init__(
        self,
        exercise: str = "pushups",
        config: Optional[SessionConfig] = None,
        stats_store=None,
        clock=None,
        ticker=None,
    ) -> None:
        if exercise not in EXERCISES:
            raise ValueError(f"Unknown exercise: {exercise}")
        self.exercise = exercise
        self.config = config or SessionConfig()
        self.stats_store = stats_store
        self.clock = clock or MonotonicClock()
        self.ticker = ticker
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        self.smoother = LandmarkSmoother(self.config.smoothing.factor)
        self.counter = RepCounter()
        self.plank_timer = PlankTimer(self.clock, stats_store, lock=self._lock)
        self.running = False
        self.paused = False
        self.last_result: Optional[AnalysisResult] = None
        self.last_feedback: FormFeedback = NO_FEEDBACK
        self.hands_feedback: FormFeedback = NO_FEEDBACK

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _dispatch(self, events: List[object]) -> None:
        # Called with the lock released so listeners may drive the session.
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    @property
    def rep_count(self) -> int:
        return self.counter.rep_count

    @property
    def counter_display(self) -> str:
        if self.exercise == "planks":
            return self.plank_timer.display
        return str(self.counter.rep_count)

    # --- control signals ---

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self.running = True
            self.paused = False
            if self.exercise == "planks":
                self.plank_timer.start()
            logger.info("Session started (%s)", self.exercise)
        self._sync_ticker()

    def pause(self) -> None:
        with self._lock:
            if not self.running or self.paused:
                return
            self.paused = True
            self.plank_timer.pause()
            logger.info("Session paused")

    def resume(self) -> None:
        with self._lock:
            if not self.paused:
                return
            self.paused = False
            self.plank_timer.resume()
            logger.info("Session resumed")

    def toggle_pause(self) -> bool:
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def stop(self) -> None:
        self._stop_ticker()
        with self._lock:
            if not self.running:
                return
            self.running = False
            self.paused = False
            if self.exercise == "planks":
                self.plank_timer.stop()
            logger.info("Session stopped (%s)", self.exercise)

    def reset(self) -> None:
        """Flush pending plank time, then clear counts, baselines and smoothing."""
        self._stop_ticker()
        with self._lock:
            self._clear_state()
            logger.info("Session reset (%s)", self.exercise)
        self._sync_ticker()

    def switch_exercise(self, exercise: str) -> None:
        if exercise not in EXERCISES:
            raise ValueError(f"Unknown exercise: {exercise}")
        self._stop_ticker()
        with self._lock:
            self._clear_state()
            self.plank_timer.stop()
            self.exercise = exercise
            if self.running and exercise == "planks":
                self.plank_timer.start()
                if self.paused:
                    self.plank_timer.pause()
            logger.info("Switched exercise to %s", exercise)
        self._sync_ticker()

    def _clear_state(self) -> None:
        self.plank_timer.reset()
        self.counter.reset()
        self.smoother.reset()
        self.last_result = None
        self.last_feedback = NO_FEEDBACK
        self.hands_feedback = NO_FEEDBACK

    def _sync_ticker(self) -> None:
        if self.ticker is None:
            return
        if self.running and self.exercise == "planks":
            self.ticker.start(self.tick)
        else:
            self.ticker.stop()

    def _stop_ticker(self) -> None:
        if self.ticker is not None:
            self.ticker.stop()

    # --- tick sources ---

    def tick(self) -> float:
        with self._lock:
            if self.exercise != "planks":
                return 0.0
            elapsed_ms = self.plank_timer.tick()
            notify = self.running and not self.paused
        if notify:
            self._dispatch([PlankElapsedUpdate(elapsed_ms)])
        return elapsed_ms

    def process_frame(self, frame: Optional[Frame], timestamp_s: Optional[float] = None) -> Dict[str, Any]:
        events: List[object] = []
        with self._lock:
            record = self._process_frame_locked(frame, timestamp_s, events)
        self._dispatch(events)
        return record

    def _process_frame_locked(
        self, frame: Optional[Frame], timestamp_s: Optional[float], events: List[object]
    ) -> Dict[str, Any]:
        if timestamp_s is None:
            timestamp_s = self.clock.now_ms() / 1000.0
        record = self._base_record(timestamp_s)
        if not self.running or self.paused:
            return record

        record["active"] = True
        if frame is None:
            self.last_result = None
            self.last_feedback = NO_FEEDBACK
            self.hands_feedback = NO_FEEDBACK
            events.append(FormStatus(False, ""))
            return record

        record["pose_detected"] = True
        smoothed = self.smoother.smooth(frame)
        result, hands = self._analyze(smoothed, timestamp_s, events)

        feedback = synthesize_feedback(result)
        self.last_result = result
        self.last_feedback = feedback
        self.hands_feedback = synthesize_feedback(hands)
        events.append(FormStatus(result.is_valid, result.reason))

        record.update(result.metrics)
        record.update(
            {
                "is_valid": result.is_valid,
                "reason": result.reason,
                "tracking_ok": result.tracking_ok,
                "status": feedback.status,
                "hands_status": self.hands_feedback.status,
                "phase": self.counter.phase.value,
                "rep_count": self.counter.rep_count,
                "baseline": self.counter.baseline,
                "elapsed_ms": self.plank_timer.elapsed_ms,
                "counter_display": self.counter_display,
            }
        )
        return record

    def _analyze(self, frame: Frame, timestamp_s: float, events: List[object]):
        config = self.config
        visibility = config.visibility_threshold
        hands: Optional[HandsCheck] = None
        counted = False

        if self.exercise == "pushups":
            result = analyze_pushup(frame, self.counter, config.pushup, visibility)
            counted = self.counter.process_pushup(result, timestamp_s=timestamp_s, config=config.pushup)
            hands = check_hands_on_floor(frame, config.hands, visibility)
        elif self.exercise == "squats":
            result = analyze_squat(frame, self.counter, config.squat, visibility)
            counted = self.counter.process_squat(result, timestamp_s=timestamp_s, config=config.squat)
        else:
            result = analyze_plank(frame, config.plank, visibility)
            self.plank_timer.update_form(result.is_valid)
            hands = check_hands_on_floor(frame, config.hands, visibility)

        if counted:
            if self.stats_store is not None:
                self.stats_store.add_exercise_count(self.exercise, 1)
            events.append(RepetitionCounted(self.exercise, self.counter.rep_count))
        return result, hands

    def _base_record(self, timestamp_s: float) -> Dict[str, Any]:
        return {
            "timestamp_s": timestamp_s,
            "exercise": self.exercise,
            "active": False,
            "pose_detected": False,
            "is_valid": False,
            "reason": "",
            "tracking_ok": False,
            "status": "",
            "hands_status": "",
            "phase": self.counter.phase.value,
            "rep_count": self.counter.rep_count,
            "baseline": self.counter.baseline,
            "elapsed_ms": self.plank_timer.elapsed_ms,
            "counter_display": self.counter_display,
        }
