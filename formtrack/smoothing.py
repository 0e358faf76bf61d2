"""Exponential smoothing of keypoint frames across a session."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .landmarks import Frame, frame_from_array, frame_to_array

logger = logging.getLogger(__name__)


class LandmarkSmoother:
    """Blend each frame with the previous smoothed one.

    ``alpha`` is the weight kept from the previous smoothed frame; the raw frame
    contributes ``1 - alpha``. Only x, y and z are blended, visibility is always
    taken from the raw frame.
    """

    def __init__(self, alpha: float = 0.7) -> None:
        if not 0.0 <= alpha < 1.0:
            raise ValueError(f"Smoothing factor must be in [0, 1), got {alpha}")
        self.alpha = alpha
        self._previous: Optional[np.ndarray] = None

    @property
    def has_state(self) -> bool:
        return self._previous is not None

    def reset(self) -> None:
        self._previous = None

    def smooth(self, frame: Frame) -> Frame:
        raw = frame_to_array(frame)
        if self._previous is None or self._previous.shape != raw.shape:
            if self._previous is not None:
                logger.debug("Frame shape changed, restarting smoothing")
            self._previous = raw
            return frame

        smoothed = raw.copy()
        smoothed[:, :3] = raw[:, :3] * (1.0 - self.alpha) + self._previous[:, :3] * self.alpha
        self._previous = smoothed
        return frame_from_array(smoothed)
