from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

from .utils import landmark_visibility

FRAME_SIZE = 33

LANDMARK_INDEX = {
    "NOSE": 0,
    "LEFT_SHOULDER": 11,
    "RIGHT_SHOULDER": 12,
    "LEFT_ELBOW": 13,
    "RIGHT_ELBOW": 14,
    "LEFT_WRIST": 15,
    "RIGHT_WRIST": 16,
    "LEFT_HIP": 23,
    "RIGHT_HIP": 24,
    "LEFT_KNEE": 25,
    "RIGHT_KNEE": 26,
    "LEFT_ANKLE": 27,
    "RIGHT_ANKLE": 28,
}

SHOULDERS = (LANDMARK_INDEX["LEFT_SHOULDER"], LANDMARK_INDEX["RIGHT_SHOULDER"])
ELBOWS = (LANDMARK_INDEX["LEFT_ELBOW"], LANDMARK_INDEX["RIGHT_ELBOW"])
WRISTS = (LANDMARK_INDEX["LEFT_WRIST"], LANDMARK_INDEX["RIGHT_WRIST"])
HIPS = (LANDMARK_INDEX["LEFT_HIP"], LANDMARK_INDEX["RIGHT_HIP"])
KNEES = (LANDMARK_INDEX["LEFT_KNEE"], LANDMARK_INDEX["RIGHT_KNEE"])
ANKLES = (LANDMARK_INDEX["LEFT_ANKLE"], LANDMARK_INDEX["RIGHT_ANKLE"])


class FrameFormatError(ValueError):
    """Raised when keypoint input does not follow the 33-landmark contract."""


@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


Frame = Tuple[Keypoint, ...]


def frame_from_landmarks(landmarks: Iterable) -> Frame:
    """Build a Frame from pose-estimator landmarks or ``[x, y, z, visibility]`` rows.

    Landmark objects only need ``x``/``y``/``z`` attributes; visibility falls back
    to ``presence`` the same way the estimator's newer task API reports it.
    """
    keypoints = []
    for position, landmark in enumerate(landmarks):
        if hasattr(landmark, "x"):
            keypoints.append(
                Keypoint(
                    float(landmark.x),
                    float(landmark.y),
                    float(getattr(landmark, "z", 0.0)),
                    landmark_visibility(landmark),
                )
            )
            continue
        values = list(landmark)
        if len(values) not in (3, 4):
            raise FrameFormatError(
                f"Landmark {position} must have 3 or 4 values, got {len(values)}"
            )
        visibility = values[3] if len(values) == 4 else 1.0
        keypoints.append(Keypoint(float(values[0]), float(values[1]), float(values[2]), float(visibility)))

    if len(keypoints) != FRAME_SIZE:
        raise FrameFormatError(f"Expected {FRAME_SIZE} landmarks, got {len(keypoints)}")
    return tuple(keypoints)


def frame_to_array(frame: Sequence[Keypoint]) -> np.ndarray:
    return np.array([(kp.x, kp.y, kp.z, kp.visibility) for kp in frame], dtype=np.float64)


def frame_from_array(array: np.ndarray) -> Frame:
    return tuple(Keypoint(float(x), float(y), float(z), float(v)) for x, y, z, v in array)
