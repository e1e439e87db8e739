"""
renderer.py – draw an equirectangular 360° frame through the view rotation

Each output pixel is a ray from the eye; rays are rotated by the remote
orientation offset (smoothing.view_rotation) and looked up in the
panorama by longitude / latitude.  Nearest-neighbour sampling at
config.RENDER_SIZE, then scaled to the window.
"""

from __future__ import annotations

import functools
import math

import numpy as np
import pygame

import config
from smoothing import view_rotation


@functools.lru_cache(maxsize=4)
def _eye_rays(w: int, h: int, fov_deg: float) -> np.ndarray:
    """Unit view rays (h*w, 3) for a pinhole camera looking down -Z."""
    f  = 0.5 * w / math.tan(math.radians(fov_deg) / 2)
    xs = (np.arange(w, dtype=np.float32) - (w - 1) / 2) / f
    ys = ((h - 1) / 2 - np.arange(h, dtype=np.float32)) / f
    gx, gy = np.meshgrid(xs, ys)
    rays = np.stack((gx, gy, -np.ones_like(gx)), axis=-1).reshape(-1, 3)
    return rays / np.linalg.norm(rays, axis=1, keepdims=True)


def sample_equirect(frame: np.ndarray, orientation, size: tuple[int, int],
                    fov_deg: float = config.FIELD_OF_VIEW) -> np.ndarray:
    """Return an (h, w, 3) viewport of *frame* seen through *orientation*."""
    w, h   = size
    fh, fw = frame.shape[:2]
    rot    = view_rotation(orientation)[:3, :3]
    # view matrix maps world → eye, so eye rays go back through its transpose
    world  = _eye_rays(w, h, fov_deg) @ rot

    lon = np.arctan2(world[:, 0], -world[:, 2])
    lat = np.arcsin(np.clip(world[:, 1], -1.0, 1.0))
    u = ((lon / (2 * np.pi) + 0.5) * fw).astype(np.int32) % fw
    v = np.clip(((0.5 - lat / np.pi) * fh).astype(np.int32), 0, fh - 1)
    return frame[v, u].reshape(h, w, 3)


def render_frame(screen: pygame.Surface, frame, orientation) -> None:
    """Render one viewport of *frame* (or black if nothing is loaded)."""
    if frame is None:
        screen.fill((0, 0, 0))
        return
    view = np.ascontiguousarray(sample_equirect(frame, orientation, config.RENDER_SIZE))
    surf = pygame.image.frombuffer(view.tobytes(), config.RENDER_SIZE, "RGB")
    screen.blit(pygame.transform.scale(surf, screen.get_size()), (0, 0))
