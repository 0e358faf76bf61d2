from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import PushupConfig, SquatConfig
    from .pose_analyzer import AnalysisResult

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


@dataclass
class RepCounter:
    phase: Phase = Phase.UP
    rep_count: int = 0
    baseline: Optional[float] = None
    rep_events: List[float] = field(default_factory=list)

    def reset(self) -> None:
        self.phase = Phase.UP
        self.rep_count = 0
        self.baseline = None
        self.rep_events = []

    def calibrate(self, value: float) -> None:
        self.baseline = value
        logger.info("Baseline calibrated at %.3f", value)

    def _count_rep(self, timestamp_s: float) -> None:
        self.phase = Phase.UP
        self.rep_count += 1
        self.rep_events.append(timestamp_s)

    def process_pushup(
        self,
        result: "AnalysisResult",
        *,
        timestamp_s: float,
        config: "PushupConfig",
    ) -> bool:
        """Advance the push-up phase; True when this frame completed a rep.

        Shoulder movement is measured against the calibrated top position, which is
        moved to the current shoulder height after every counted rep.
        """
        if not result.tracking_ok or self.baseline is None:
            return False
        if not (result.flags.get("shoulders_above_hips") and result.flags.get("is_aligned")):
            return False

        avg_shoulder_y = result.metrics["avg_shoulder_y"]
        avg_angle = result.metrics["avg_elbow_angle"]
        shoulder_movement = avg_shoulder_y - self.baseline
        down_threshold = config.min_shoulder_drop * config.down_drop_factor
        up_threshold = config.min_shoulder_drop * config.up_drop_factor

        if self.phase is Phase.UP:
            if shoulder_movement > down_threshold and avg_angle < config.elbow_angle_threshold:
                self.phase = Phase.DOWN
                logger.debug("Push-up DOWN (movement %.3f, elbow %.1f)", shoulder_movement, avg_angle)
        elif shoulder_movement < up_threshold and avg_angle > config.elbow_up_angle:
            self._count_rep(timestamp_s)
            self.baseline = avg_shoulder_y
            logger.info("Push-up rep %d, baseline moved to %.3f", self.rep_count, avg_shoulder_y)
            return True
        return False

    def process_squat(
        self,
        result: "AnalysisResult",
        *,
        timestamp_s: float,
        config: "SquatConfig",
    ) -> bool:
        """Advance the squat phase; True when this frame completed a rep.

        Only a valid bent frame (deep enough, legs balanced) enters DOWN. The standing
        baseline is kept for the whole session.
        """
        if not result.tracking_ok or self.baseline is None:
            return False

        avg_angle = result.metrics["avg_knee_angle"]
        if self.phase is Phase.UP:
            if avg_angle < config.knee_angle_threshold and result.is_valid:
                self.phase = Phase.DOWN
                logger.debug("Squat DOWN (knee %.1f)", avg_angle)
        elif avg_angle > config.standing_knee_angle:
            self._count_rep(timestamp_s)
            logger.info("Squat rep %d", self.rep_count)
            return True
        return False
