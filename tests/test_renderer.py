"""Equirectangular viewport sampling."""

from __future__ import annotations

import numpy as np

from renderer import sample_equirect


def _column_coded_frame(h: int = 8, w: int = 16) -> np.ndarray:
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[..., 0] = np.arange(w, dtype=np.uint8)[None, :]
    frame[..., 1] = np.arange(h, dtype=np.uint8)[:, None]
    return frame


def test_neutral_view_looks_at_panorama_centre():
    frame = _column_coded_frame()
    view = sample_equirect(frame, (0.0, 0.0, 0.0), (3, 3), fov_deg=30.0)

    assert view.shape == (3, 3, 3)
    assert tuple(view[1, 1, :2]) == (8, 4)


def test_quarter_turn_about_y_moves_a_quarter_of_the_panorama():
    frame = _column_coded_frame()
    view = sample_equirect(frame, (0.0, 0.0, 90.0), (3, 3), fov_deg=30.0)

    assert abs(int(view[1, 1, 0]) - 12) <= 1
    assert abs(int(view[1, 1, 1]) - 4) <= 1
