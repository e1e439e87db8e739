#!/usr/bin/env python3
"""
app.py – VR 360° player driven by remote UDP broadcasts

The UDP listener thread decodes datagrams and posts them to EventManager.
This main loop is the only place that touches the playback session: every
frame it drains the queue, reconciles control messages against the
player, eases the camera toward its target orientation and draws.
"""
from __future__ import annotations

import logging
from typing import Optional

import pygame

import config
from codec        import ControlMessage
from events       import EventManager
from overlays     import draw_overlay
from reconciler   import LoadError, SessionReconciler
from renderer     import render_frame
from smoothing    import OrientationSmoother
from udp_listener import BroadcastListener, ListenError
from video_player import VideoPlayer

logger = logging.getLogger(__name__)


class VRPlayer:
    def __init__(self, initial_locator: Optional[str] = None,
                 port: int = config.UDP_PORT):
        # window ----------------------------------------------------------
        pygame.init()
        pygame.mouse.set_visible(False)
        self.screen = self._set_mode()
        pygame.display.set_caption("VR remote player")
        self.clock = pygame.time.Clock()

        # core state ------------------------------------------------------
        self.player     = VideoPlayer()
        self.reconciler = SessionReconciler(self.player)
        self.smoother   = OrientationSmoother(self.reconciler.session)
        self.listener   = BroadcastListener(EventManager.post)
        self.port       = port
        self.running    = False

        if initial_locator:
            self._load_initial(initial_locator)

    # ── host interface ----------------------------------------------------
    def start_listening(self, port: Optional[int] = None) -> bool:
        port = self.port if port is None else port
        try:
            self.port = self.listener.start(port)
        except ListenError as exc:
            logger.error("cannot start remote listener: %s", exc)
            return False
        return True

    def stop_listening(self, join: bool = False) -> None:
        self.listener.stop(join=join)

    def get_smoothed_orientation(self):
        return self.smoother.smoothed_orientation()

    def status(self) -> dict:
        """Snapshot for the web remote (called from its threads)."""
        snap = self.reconciler.snapshot()
        snap["listening_port"] = self.listener.port
        snap["duration_ms"]    = self.player.duration_ms()
        snap["queued_events"]  = EventManager.pending()
        snap["dropped_events"] = EventManager.dropped
        return snap

    # ── helpers -----------------------------------------------------------
    def _set_mode(self) -> pygame.Surface:
        return pygame.display.set_mode(
            (0, 0) if config.FULLSCREEN else config.WINDOWED_SIZE,
            pygame.FULLSCREEN if config.FULLSCREEN else 0,
        )

    def _load_initial(self, locator: str) -> None:
        try:
            self.reconciler.apply(ControlMessage(locator))
        except (LoadError, ValueError) as exc:
            logger.error("cannot open %s: %s", locator, exc)

    def _dispatch(self, act: dict) -> None:
        t = act["type"]
        if t == "quit":
            self.running = False
        elif t == "control":
            try:
                self.reconciler.apply(act["message"], act.get("sender", ""))
            except LoadError as exc:
                logger.error("reload rejected: %s", exc)
        elif t == "decode_error":
            logger.info("ignored datagram from %s: %s", act.get("sender"), act["error"])
        elif t == "listener_stopped":
            logger.warning("remote control offline until restarted (%s)", act.get("error"))
        elif t == "start_listening":
            self.start_listening(act.get("port"))
        elif t == "stop_listening":
            self.stop_listening()
        elif t == "toggle_listening":
            if self.listener.is_running:
                self.stop_listening()
            else:
                self.start_listening()
        elif t == "toggle_overlay":
            config.SHOW_OVERLAYS ^= True
        elif t == "toggle_fullscreen":
            config.FULLSCREEN ^= True
            self.screen = self._set_mode()
            pygame.mouse.set_visible(False)
        else:
            logger.debug("unhandled action %r", t)

    # ── main loop ---------------------------------------------------------
    def run(self):
        self.running = True
        if config.LISTEN_ON_START:
            self.start_listening()

        try:
            while self.running:
                for e in pygame.event.get():
                    EventManager.handle(e)

                # drain external queue (non-blocking)
                while self.running and (act := EventManager.poll()):
                    self._dispatch(act)

                orientation = self.smoother.step()
                render_frame(self.screen, self.player.decode_frame(), orientation)
                draw_overlay(self.screen, self.reconciler.snapshot(),
                             self.listener.port, self.player.duration_ms())

                pygame.display.flip()
                self.clock.tick(config.FPS)
        finally:
            self.stop_listening(join=True)
            self.player.close()
            pygame.quit()


if __name__ == "__main__":
    VRPlayer().run()
