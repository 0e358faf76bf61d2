"""Geometry and helper utilities."""

from typing import Iterable, Sequence, Tuple

import numpy as np

# Returned for a zero-length ray so NaN never reaches a threshold comparison.
DEGENERATE_ANGLE = 0.0


def calculate_angle(point_a: Iterable[float], point_b: Iterable[float], point_c: Iterable[float]) -> float:
    """Return angle ABC in degrees for three 2D points."""
    a = np.array(point_a, dtype=np.float64)
    b = np.array(point_b, dtype=np.float64)
    c = np.array(point_c, dtype=np.float64)

    ba = a - b
    bc = c - b
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)

    if norm_ba == 0.0 or norm_bc == 0.0:
        return DEGENERATE_ANGLE

    cosine_angle = float(np.dot(ba, bc) / (norm_ba * norm_bc))
    cosine_angle = float(np.clip(cosine_angle, -1.0, 1.0))
    return float(np.degrees(np.arccos(cosine_angle)))


def landmark_visibility(landmark) -> float:
    visibility = getattr(landmark, "visibility", None)
    if visibility is None:
        visibility = getattr(landmark, "presence", 1.0)
    return float(visibility)


def landmarks_visible(landmarks, indices: Iterable[int], threshold: float = 0.5) -> bool:
    """True when every listed landmark is strictly above the visibility threshold."""
    return all(landmark_visibility(landmarks[index]) > threshold for index in indices)


def landmark_xy(landmarks, index: int) -> Tuple[float, float]:
    landmark = landmarks[index]
    return float(landmark.x), float(landmark.y)


def average_y(landmarks, indices: Sequence[int]) -> float:
    return float(np.mean([landmarks[index].y for index in indices]))


def level_difference(landmarks, left: int, right: int) -> float:
    return abs(float(landmarks[left].y) - float(landmarks[right].y))


def format_elapsed(elapsed_ms: float) -> str:
    """Stopwatch style MM:SS.d."""
    elapsed_ms = max(float(elapsed_ms), 0.0)
    total_seconds = int(elapsed_ms // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    tenths = int((elapsed_ms % 1000) // 100)
    return f"{minutes:02d}:{seconds:02d}.{tenths}"
