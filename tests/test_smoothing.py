from types import SimpleNamespace

import pytest

from formtrack.landmarks import FRAME_SIZE, FrameFormatError, Keypoint, frame_from_landmarks
from formtrack.smoothing import LandmarkSmoother

from conftest import make_frame


def uniform_frame(x, y, z=0.0, visibility=1.0):
    return tuple(Keypoint(x, y, z, visibility) for _ in range(FRAME_SIZE))


def test_first_frame_returned_unchanged():
    smoother = LandmarkSmoother()
    frame = uniform_frame(0.2, 0.3, 0.1)
    assert smoother.smooth(frame) == frame
    assert smoother.has_state


def test_blend_uses_previous_weight_and_raw_visibility():
    smoother = LandmarkSmoother(alpha=0.7)
    smoother.smooth(uniform_frame(0.0, 0.0, 0.0, visibility=0.9))
    out = smoother.smooth(uniform_frame(1.0, 0.5, -1.0, visibility=0.2))
    assert out[0].x == pytest.approx(0.3)
    assert out[0].y == pytest.approx(0.15)
    assert out[0].z == pytest.approx(-0.3)
    assert out[0].visibility == 0.2


def test_constant_input_converges_monotonically():
    smoother = LandmarkSmoother(alpha=0.7)
    smoother.smooth(uniform_frame(0.0, 0.0))
    target = uniform_frame(1.0, 1.0)
    distances = []
    for _ in range(40):
        out = smoother.smooth(target)
        distances.append(abs(1.0 - out[11].x))
    assert all(later < earlier for earlier, later in zip(distances, distances[1:]))
    assert distances[-1] < 1e-5


def test_reset_forgets_previous_frame():
    smoother = LandmarkSmoother()
    smoother.smooth(uniform_frame(0.0, 0.0))
    smoother.reset()
    frame = uniform_frame(0.8, 0.8)
    assert smoother.smooth(frame) == frame


@pytest.mark.parametrize("alpha", [-0.1, 1.0, 1.5])
def test_invalid_alpha_rejected(alpha):
    with pytest.raises(ValueError):
        LandmarkSmoother(alpha=alpha)


def test_frame_from_rows_and_objects():
    rows = [[0.1, 0.2, 0.0, 0.9]] * FRAME_SIZE
    frame = frame_from_landmarks(rows)
    assert len(frame) == FRAME_SIZE
    assert frame[0] == Keypoint(0.1, 0.2, 0.0, 0.9)

    objects = [SimpleNamespace(x=0.4, y=0.5, z=0.0, visibility=None, presence=0.6)] * FRAME_SIZE
    assert frame_from_landmarks(objects)[5].visibility == pytest.approx(0.6)


def test_frame_from_landmarks_rejects_wrong_size():
    with pytest.raises(FrameFormatError):
        frame_from_landmarks([[0.1, 0.2, 0.0, 1.0]] * 10)
    with pytest.raises(FrameFormatError):
        frame_from_landmarks([[0.1, 0.2]] * FRAME_SIZE)


def test_keypoints_are_immutable():
    frame = make_frame({})
    with pytest.raises(AttributeError):
        frame[0].x = 0.9
