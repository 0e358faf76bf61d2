import math
from typing import Dict, Optional

import pytest

from formtrack.clock import ManualClock
from formtrack.landmarks import FRAME_SIZE, LANDMARK_INDEX, Keypoint
from formtrack.stats import InMemoryStatsStore

IDX = LANDMARK_INDEX


def make_frame(points: Dict[int, Keypoint], default_visibility: float = 1.0):
    frame = [Keypoint(0.5, 0.5, 0.0, default_visibility) for _ in range(FRAME_SIZE)]
    for index, keypoint in points.items():
        frame[index] = keypoint
    return tuple(frame)


def _limb_end(vertex_x: float, vertex_y: float, angle_deg: float, length: float, mirror: bool):
    # Upper segment points straight up from the vertex, so the joint angle equals angle_deg.
    theta = math.radians(angle_deg)
    sign = -1.0 if mirror else 1.0
    return vertex_x + sign * length * math.sin(theta), vertex_y - length * math.cos(theta)


def pushup_frame(
    elbow_angle: float,
    shoulder_y: float = 0.4,
    hip_y: Optional[float] = None,
    right_elbow_angle: Optional[float] = None,
    shoulder_tilt: float = 0.0,
    wrist_visibility: float = 1.0,
):
    hip_y = shoulder_y + 0.05 if hip_y is None else hip_y
    right_elbow_angle = elbow_angle if right_elbow_angle is None else right_elbow_angle
    points = {}
    for side, x, angle, tilt, mirror in (
        ("LEFT", 0.4, elbow_angle, 0.0, False),
        ("RIGHT", 0.6, right_elbow_angle, shoulder_tilt, True),
    ):
        sy = shoulder_y + tilt
        points[IDX[f"{side}_SHOULDER"]] = Keypoint(x, sy)
        points[IDX[f"{side}_ELBOW"]] = Keypoint(x, sy + 0.1)
        wx, wy = _limb_end(x, sy + 0.1, angle, 0.1, mirror)
        points[IDX[f"{side}_WRIST"]] = Keypoint(wx, wy, 0.0, wrist_visibility)
        points[IDX[f"{side}_HIP"]] = Keypoint(x, hip_y)
    return make_frame(points)


def squat_frame(
    knee_angle: float,
    hip_y: float = 0.5,
    right_knee_angle: Optional[float] = None,
    ankle_visibility: float = 1.0,
):
    right_knee_angle = knee_angle if right_knee_angle is None else right_knee_angle
    points = {}
    for side, x, angle, mirror in (
        ("LEFT", 0.45, knee_angle, False),
        ("RIGHT", 0.55, right_knee_angle, True),
    ):
        points[IDX[f"{side}_SHOULDER"]] = Keypoint(x, hip_y - 0.3)
        points[IDX[f"{side}_HIP"]] = Keypoint(x, hip_y)
        points[IDX[f"{side}_KNEE"]] = Keypoint(x, hip_y + 0.2)
        ax, ay = _limb_end(x, hip_y + 0.2, angle, 0.2, mirror)
        points[IDX[f"{side}_ANKLE"]] = Keypoint(ax, ay, 0.0, ankle_visibility)
    return make_frame(points)


def plank_frame(shoulder_y: float = 0.5, hip_y: float = 0.52, hip_tilt: float = 0.0, hip_visibility: float = 1.0):
    points = {
        IDX["LEFT_SHOULDER"]: Keypoint(0.3, shoulder_y),
        IDX["RIGHT_SHOULDER"]: Keypoint(0.32, shoulder_y),
        IDX["LEFT_HIP"]: Keypoint(0.6, hip_y, 0.0, hip_visibility),
        IDX["RIGHT_HIP"]: Keypoint(0.62, hip_y + hip_tilt, 0.0, hip_visibility),
        IDX["LEFT_WRIST"]: Keypoint(0.3, hip_y + 0.2),
        IDX["RIGHT_WRIST"]: Keypoint(0.32, hip_y + 0.2),
    }
    return make_frame(points)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def stats_store():
    return InMemoryStatsStore()
