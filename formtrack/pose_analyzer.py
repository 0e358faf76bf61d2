from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import HandsConfig, PlankConfig, PushupConfig, SquatConfig
from .landmarks import ANKLES, ELBOWS, HIPS, KNEES, LANDMARK_INDEX, SHOULDERS, WRISTS, Frame
from .rep_counter import Phase, RepCounter
from .utils import average_y, calculate_angle, landmark_xy, landmarks_visible, level_difference

logger = logging.getLogger(__name__)

REASON_NOT_VISIBLE = "Not all body parts visible"
REASON_OUT_OF_VIEW = "Position yourself in view"
REASON_BODY_HIGHER = "Keep your body higher"
REASON_BODY_STRAIGHT = "Keep your body straight"
REASON_ARMS_SYMMETRIC = "Work with both arms symmetrically"
REASON_BEND_ARMS = "Bend your arms more"
REASON_STRAIGHTEN_ARMS = "Straighten your arms completely"
REASON_STAND_UP = "Stand up straight to start"
REASON_LEGS_BALANCED = "Keep both legs balanced"
REASON_GO_LOWER = "Go lower"
REASON_BODY_HORIZONTAL = "Keep your body horizontal"
REASON_WRISTS_NOT_VISIBLE = "Wrists not visible"
REASON_RAISE_HANDS = "Raise your hands"
REASON_HANDS_ON_FLOOR = "Hands detected on floor"


@dataclass
class AnalysisResult:
    is_valid: bool
    reason: str = ""
    metrics: Dict[str, float] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)
    tracking_ok: bool = True

    @classmethod
    def missing(cls, reason: str) -> "AnalysisResult":
        return cls(is_valid=False, reason=reason, tracking_ok=False)


@dataclass
class HandsCheck:
    hands_on_floor: bool
    reason: str


def _joint_angle(landmarks: Frame, first: int, vertex: int, last: int) -> float:
    return calculate_angle(
        landmark_xy(landmarks, first),
        landmark_xy(landmarks, vertex),
        landmark_xy(landmarks, last),
    )


def _body_tilt(landmarks: Frame) -> float:
    return max(level_difference(landmarks, *SHOULDERS), level_difference(landmarks, *HIPS))


def analyze_pushup(
    landmarks: Frame,
    counter: RepCounter,
    config: Optional[PushupConfig] = None,
    visibility_threshold: float = 0.5,
) -> AnalysisResult:
    """Judge one push-up frame against the counter's current phase.

    Calibrates ``counter.baseline`` to the shoulder height of the first straight-arm,
    aligned frame with shoulders above hips. The check order is fixed: body height,
    alignment, arm symmetry, then the phase-dependent elbow rule.
    """
    config = config or PushupConfig()
    if not landmarks_visible(landmarks, SHOULDERS + ELBOWS + WRISTS, visibility_threshold):
        logger.debug("Push-up landmarks below visibility threshold")
        return AnalysisResult.missing(REASON_NOT_VISIBLE)

    left_angle = _joint_angle(
        landmarks, LANDMARK_INDEX["LEFT_SHOULDER"], LANDMARK_INDEX["LEFT_ELBOW"], LANDMARK_INDEX["LEFT_WRIST"]
    )
    right_angle = _joint_angle(
        landmarks, LANDMARK_INDEX["RIGHT_SHOULDER"], LANDMARK_INDEX["RIGHT_ELBOW"], LANDMARK_INDEX["RIGHT_WRIST"]
    )
    avg_angle = (left_angle + right_angle) / 2
    symmetry_gap = abs(left_angle - right_angle)

    avg_shoulder_y = average_y(landmarks, SHOULDERS)
    avg_hip_y = average_y(landmarks, HIPS)
    body_tilt = _body_tilt(landmarks)

    shoulders_above_hips = avg_shoulder_y < avg_hip_y
    is_aligned = body_tilt < config.alignment_threshold
    both_arms_bent = left_angle < config.elbow_angle_threshold and right_angle < config.elbow_angle_threshold

    if (
        counter.baseline is None
        and shoulders_above_hips
        and is_aligned
        and avg_angle > config.straight_arm_angle
    ):
        counter.calibrate(avg_shoulder_y)

    reason = ""
    if not shoulders_above_hips:
        reason = REASON_BODY_HIGHER
    elif not is_aligned:
        reason = REASON_BODY_STRAIGHT
    elif symmetry_gap >= config.symmetry_threshold:
        reason = REASON_ARMS_SYMMETRIC
    elif counter.phase is Phase.DOWN and not both_arms_bent:
        reason = REASON_BEND_ARMS
    elif counter.phase is Phase.UP and avg_angle < config.min_straighten_angle:
        reason = REASON_STRAIGHTEN_ARMS

    return AnalysisResult(
        is_valid=not reason,
        reason=reason,
        metrics={
            "left_elbow_angle": left_angle,
            "right_elbow_angle": right_angle,
            "avg_elbow_angle": avg_angle,
            "symmetry_gap": symmetry_gap,
            "avg_shoulder_y": avg_shoulder_y,
            "avg_hip_y": avg_hip_y,
            "shoulder_height": abs(avg_shoulder_y - avg_hip_y),
            "body_tilt": body_tilt,
        },
        flags={"shoulders_above_hips": shoulders_above_hips, "is_aligned": is_aligned},
    )


def analyze_squat(
    landmarks: Frame,
    counter: RepCounter,
    config: Optional[SquatConfig] = None,
    visibility_threshold: float = 0.5,
) -> AnalysisResult:
    """Judge one squat frame; the standing hip height is calibrated once."""
    config = config or SquatConfig()
    if not landmarks_visible(landmarks, HIPS + KNEES + ANKLES, visibility_threshold):
        logger.debug("Squat landmarks below visibility threshold")
        return AnalysisResult.missing(REASON_NOT_VISIBLE)

    left_angle = _joint_angle(
        landmarks, LANDMARK_INDEX["LEFT_HIP"], LANDMARK_INDEX["LEFT_KNEE"], LANDMARK_INDEX["LEFT_ANKLE"]
    )
    right_angle = _joint_angle(
        landmarks, LANDMARK_INDEX["RIGHT_HIP"], LANDMARK_INDEX["RIGHT_KNEE"], LANDMARK_INDEX["RIGHT_ANKLE"]
    )
    avg_angle = (left_angle + right_angle) / 2
    angle_difference = abs(left_angle - right_angle)
    avg_hip_y = average_y(landmarks, HIPS)

    if counter.baseline is None and avg_angle > config.standing_knee_angle:
        counter.calibrate(avg_hip_y)

    metrics = {
        "left_knee_angle": left_angle,
        "right_knee_angle": right_angle,
        "avg_knee_angle": avg_angle,
        "angle_difference": angle_difference,
        "avg_hip_y": avg_hip_y,
    }
    is_symmetric = angle_difference < config.symmetry_threshold
    flags = {"is_symmetric": is_symmetric}

    reason = ""
    if counter.baseline is None:
        reason = REASON_STAND_UP
    else:
        hip_drop = avg_hip_y - counter.baseline
        metrics["hip_drop"] = hip_drop
        if not is_symmetric:
            reason = REASON_LEGS_BALANCED
        elif avg_angle < config.knee_angle_threshold:
            if hip_drop <= config.hip_drop_threshold:
                reason = REASON_GO_LOWER
        elif avg_angle <= config.standing_knee_angle:
            reason = REASON_OUT_OF_VIEW

    return AnalysisResult(is_valid=not reason, reason=reason, metrics=metrics, flags=flags)


def analyze_plank(
    landmarks: Frame,
    config: Optional[PlankConfig] = None,
    visibility_threshold: float = 0.5,
) -> AnalysisResult:
    config = config or PlankConfig()
    if not landmarks_visible(landmarks, SHOULDERS + HIPS, visibility_threshold):
        logger.debug("Plank landmarks below visibility threshold")
        return AnalysisResult.missing(REASON_OUT_OF_VIEW)

    body_tilt = _body_tilt(landmarks)
    vertical_diff = abs(average_y(landmarks, SHOULDERS) - average_y(landmarks, HIPS))
    is_aligned = body_tilt < config.alignment_threshold
    is_horizontal = vertical_diff < config.horizontal_threshold

    reason = ""
    if not is_aligned:
        reason = REASON_BODY_STRAIGHT
    elif not is_horizontal:
        reason = REASON_BODY_HORIZONTAL

    return AnalysisResult(
        is_valid=not reason,
        reason=reason,
        metrics={"body_tilt": body_tilt, "vertical_diff": vertical_diff},
        flags={"is_aligned": is_aligned, "is_horizontal": is_horizontal},
    )


def check_hands_on_floor(
    landmarks: Frame,
    config: Optional[HandsConfig] = None,
    visibility_threshold: float = 0.5,
) -> HandsCheck:
    """Hands count as on the floor when the wrists sit well below hip level."""
    config = config or HandsConfig()
    if not landmarks_visible(landmarks, WRISTS, visibility_threshold):
        return HandsCheck(False, REASON_WRISTS_NOT_VISIBLE)

    avg_wrist_y = average_y(landmarks, WRISTS)
    avg_hip_y = average_y(landmarks, HIPS)
    hands_on_floor = avg_wrist_y >= avg_hip_y + config.floor_offset
    return HandsCheck(hands_on_floor, REASON_HANDS_ON_FLOOR if hands_on_floor else REASON_RAISE_HANDS)
