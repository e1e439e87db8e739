"""
overlays.py

Pygame HUD for the VR remote player: what is loaded, where the play-head
is, where the camera is heading, and whether the remote listener is up.
"""

from __future__ import annotations

import os, time, urllib.parse, pygame, config

# ── colours ────────────────────────────────────────────────────────────────
WHITE = (255, 255, 255)
GREEN = (0, 255, 0)
RED   = (255,  50, 50)
YEL   = (200, 200, 50)
BG    = (0, 0, 0, 180)

pygame.font.init()


# ── helpers ────────────────────────────────────────────────────────────────
def _compute_font_sizes(h: int) -> tuple[int, int]:
    return max(12, h // 60), max(16, h // 45)


def _fmt_ms(ms: int) -> str:
    sec, milli = divmod(int(max(0, ms)), 1000)
    m, s = divmod(sec, 60)
    h, m = divmod(m, 60)
    return f"{h:02d}:{m:02d}:{s:02d}.{milli:03d}"


def _fmt_triple(t) -> str:
    return " ".join(f"{v:+7.2f}" for v in t)


def _short_name(locator: str) -> str:
    if not locator:
        return "(nothing loaded)"
    path = urllib.parse.urlsplit(locator).path or locator
    return os.path.basename(path) or locator


def _badge(surface, font, text, colour, pos) -> pygame.Surface:
    txt = font.render(text, True, colour)
    pad = font.get_height() // 4
    bg  = pygame.Surface((txt.get_width() + 2 * pad, txt.get_height() + pad),
                         pygame.SRCALPHA)
    bg.fill(BG)
    bg.blit(txt, (pad, pad // 2))
    surface.blit(bg, pos)
    return bg


def overlay_lines(snapshot: dict, listening_port, duration_ms: int = 0) -> list[str]:
    """Text panel contents; shared with the web remote."""
    pos = snapshot["position_ms"]
    lines = [
        f"Now      {_short_name(snapshot['resource'])}",
        f"Position {_fmt_ms(pos)}" + (f" / {_fmt_ms(duration_ms)}" if duration_ms else ""),
        f"Heading  {_fmt_triple(snapshot['current_orientation'])}",
        f"Target   {_fmt_triple(snapshot['target_orientation'])}",
        f"Last     {snapshot['last_decision']}"
        + (f" from {snapshot['last_sender']}" if snapshot["last_sender"] else ""),
    ]
    if snapshot["last_error"]:
        lines.append(f"Error    {snapshot['last_error']}")
    lines.append(f"UDP      {'port ' + str(listening_port) if listening_port else 'off'}")
    return lines


# ── main entry point ───────────────────────────────────────────────────────
def draw_overlay(surface: pygame.Surface, snapshot: dict,
                 listening_port, duration_ms: int = 0) -> None:
    sw, sh = surface.get_width(), surface.get_height()
    tiny_pt, small_pt = _compute_font_sizes(sh)
    FT = pygame.font.SysFont("monospace", tiny_pt)
    FS = pygame.font.SysFont("monospace", small_pt)

    # ── listener badge (always) ──────────────────────────────────────────
    colour = GREEN if listening_port else RED
    _badge(surface, FS, "REMOTE" if listening_port else "LOCAL", colour, (10, 10))

    if not config.SHOW_OVERLAYS:
        return

    # ── info panel ──────────────────────────────────────────────────────
    lines  = overlay_lines(snapshot, listening_port, duration_ms)
    widest = max(FT.size(t)[0] for t in lines)
    pbg = pygame.Surface(
        (widest + 20, len(lines) * (FT.get_linesize() + 2) + 10),
        pygame.SRCALPHA,
    )
    pbg.fill(BG)
    y = 5
    for t in lines:
        colour = RED if t.startswith("Error") else WHITE
        pbg.blit(FT.render(t, True, colour), (10, y))
        y += FT.get_linesize() + 2
    surface.blit(pbg, (sw - pbg.get_width() - 10, 10))

    # ── bottom-right wall clock ─────────────────────────────────────────
    clock = FS.render(time.strftime("%H:%M:%S"), True, YEL)
    surface.blit(clock, (sw - clock.get_width() - 10, sh - clock.get_height() - 10))
