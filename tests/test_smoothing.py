"""Orientation easing and the camera offset transform."""

from __future__ import annotations

import numpy as np
import pytest

from reconciler import SessionState
from smoothing import OrientationSmoother, tick, view_rotation


def test_single_tick():
    assert tick((0, 0, 0), (10, 0, 0), 0.1) == pytest.approx((1.0, 0.0, 0.0))


def test_converges_monotonically_without_reaching_target():
    current = (0.0, 0.0, 0.0)
    xs = []
    for _ in range(10):
        current = tick(current, (10.0, 0.0, 0.0), 0.1)
        xs.append(current[0])

    assert all(b > a for a, b in zip(xs, xs[1:]))
    assert all(x < 10.0 for x in xs)
    # geometric decay: residual is 0.9**n of the initial error
    assert 10.0 - xs[-1] == pytest.approx(10.0 * 0.9 ** 10, rel=1e-4)


def test_axes_are_independent():
    out = tick((10.0, -10.0, 0.0), (0.0, 0.0, 20.0), 0.5)
    assert out == pytest.approx((5.0, -5.0, 10.0))


def test_factor_bounds():
    assert tick((1, 2, 3), (4, 5, 6), 0.0) == pytest.approx((1, 2, 3))
    assert tick((1, 2, 3), (4, 5, 6), 1.0) == pytest.approx((4, 5, 6))
    with pytest.raises(ValueError):
        tick((0, 0, 0), (1, 1, 1), 1.5)
    with pytest.raises(ValueError):
        OrientationSmoother(SessionState(), factor=-0.1)


def test_smoother_updates_session_current_only():
    session = SessionState(target_orientation=(10.0, 20.0, -30.0))
    smoother = OrientationSmoother(session, factor=0.1)

    out = smoother.step()

    assert out == pytest.approx((1.0, 2.0, -3.0))
    assert session.current_orientation == out
    assert smoother.smoothed_orientation() == out
    assert smoother.target() == (10.0, 20.0, -30.0)


def test_custom_factor_changes_pace():
    slow = OrientationSmoother(SessionState(target_orientation=(10.0, 0.0, 0.0)), factor=0.1)
    fast = OrientationSmoother(SessionState(target_orientation=(10.0, 0.0, 0.0)), factor=0.5)
    for _ in range(3):
        slow.step()
        fast.step()
    assert slow.smoothed_orientation()[0] == pytest.approx(10 * (1 - 0.9 ** 3), rel=1e-5)
    assert fast.smoothed_orientation()[0] == pytest.approx(10 * (1 - 0.5 ** 3), rel=1e-5)


def _apply(m, v):
    return m[:3, :3] @ np.asarray(v, dtype=np.float32)


def test_zero_orientation_is_identity():
    assert np.allclose(view_rotation((0, 0, 0)), np.eye(4))


def test_yaw_turns_about_z_with_inverted_sign():
    assert np.allclose(_apply(view_rotation((90, 0, 0)), (1, 0, 0)), (0, -1, 0), atol=1e-6)


def test_second_component_turns_about_x():
    assert np.allclose(_apply(view_rotation((0, 90, 0)), (0, 1, 0)), (0, 0, 1), atol=1e-6)


def test_third_component_turns_about_y():
    assert np.allclose(_apply(view_rotation((0, 0, 90)), (0, 0, 1)), (1, 0, 0), atol=1e-6)


def test_rotations_compose_x_then_y_then_z():
    yaw, pitch, roll = 30.0, 45.0, 60.0
    expected = (
        view_rotation((0, pitch, 0))
        @ view_rotation((0, 0, roll))
        @ view_rotation((yaw, 0, 0))
    )
    assert np.allclose(view_rotation((yaw, pitch, roll)), expected, atol=1e-6)


def test_view_matrix_follows_smoothed_orientation():
    session = SessionState(target_orientation=(90.0, 0.0, 0.0))
    smoother = OrientationSmoother(session, factor=1.0)
    smoother.step()
    assert np.allclose(smoother.view_matrix(), view_rotation((90.0, 0.0, 0.0)))
