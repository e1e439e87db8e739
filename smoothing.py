"""
smoothing.py – per-frame orientation easing

Network orientation updates arrive in bursts; the camera must not jump.
Every rendered frame moves the current orientation a fixed fraction of the
way toward the target (exponential ease, no overshoot).  With a constant
target the remaining error after n ticks is (1 - factor)**n of the start.
"""

from __future__ import annotations

import math
import threading
from typing import Sequence

import numpy as np

import config
from codec import Orientation
from reconciler import SessionState


def tick(current: Sequence[float], target: Sequence[float],
         factor: float = config.SMOOTHING_FACTOR) -> Orientation:
    """current*(1-factor) + target*factor per axis, in float32."""
    if not 0.0 <= factor <= 1.0:
        raise ValueError(f"smoothing factor must be in [0, 1], got {factor}")
    f   = np.float32(factor)
    cur = np.asarray(current, dtype=np.float32)
    tgt = np.asarray(target, dtype=np.float32)
    out = cur * (np.float32(1.0) - f) + tgt * f
    return float(out[0]), float(out[1]), float(out[2])


# ── camera transform ───────────────────────────────────────────────────────
def _rot(deg: float, axis: int) -> np.ndarray:
    """4x4 right-handed rotation of *deg* degrees about x (0), y (1) or z (2)."""
    a = math.radians(deg)
    c, s = math.cos(a), math.sin(a)
    i, j = [(1, 2), (2, 0), (0, 1)][axis]
    m = np.eye(4, dtype=np.float32)
    m[i, i] = c
    m[j, j] = c
    m[i, j] = -s
    m[j, i] = s
    return m


def view_rotation(orientation: Sequence[float]) -> np.ndarray:
    """
    Extra view rotation for a (yaw, pitch, roll) offset, post-multiplied in
    the order: component 1 about X, component 2 about Y, then -yaw about Z.
    """
    yaw, pitch, roll = (float(v) for v in orientation)
    return _rot(pitch, 0) @ _rot(roll, 1) @ _rot(-yaw, 2)


# ── stateful smoother bound to a session ───────────────────────────────────
class OrientationSmoother:
    def __init__(self, session: SessionState,
                 factor: float = config.SMOOTHING_FACTOR) -> None:
        if not 0.0 <= factor <= 1.0:
            raise ValueError(f"smoothing factor must be in [0, 1], got {factor}")
        self.session = session
        self.factor  = factor
        self._lock   = threading.Lock()

    def step(self) -> Orientation:
        """Advance one frame; returns the new current orientation."""
        with self._lock:
            s = self.session
            s.current_orientation = tick(s.current_orientation,
                                         s.target_orientation, self.factor)
            return s.current_orientation

    def smoothed_orientation(self) -> Orientation:
        with self._lock:
            return self.session.current_orientation

    def target(self) -> Orientation:
        with self._lock:
            return self.session.target_orientation

    def view_matrix(self) -> np.ndarray:
        return view_rotation(self.smoothed_orientation())
