#!/usr/bin/env python3
"""
events.py  – central hub

• Translates raw Pygame events to high-level action dicts.
• Exposes a thread-safe, bounded queue so *any* external source (the UDP
  listener, the web remote) can inject actions for the main loop.
• post() never blocks: when the queue is full the oldest undelivered
  action is dropped so the newest one always gets through.
"""

from __future__ import annotations
import logging
import queue
import threading

from pygame.locals import QUIT, KEYDOWN, K_ESCAPE, K_q, K_i, K_f, K_l

import config

Action = dict      # alias for readability

logger = logging.getLogger(__name__)


class EventManager:
    _fifo: "queue.Queue[Action]" = queue.Queue(maxsize=config.EVENT_QUEUE_SIZE)
    _put_lock = threading.Lock()      # serialises drop-oldest + put
    dropped = 0

    # ── SDL / keyboard path ────────────────────────────────────────────
    @classmethod
    def handle(cls, event) -> None:
        """Translate one Pygame event → action and enqueue it."""
        act = cls._translate_pygame(event)
        if act:
            cls.post(act)

    # ── external / programmatic path ───────────────────────────────────
    @classmethod
    def post(cls, action: Action) -> None:
        """
        Any thread may call this to inject an already-formed action dict, e.g.:
            EventManager.post({"type":"control","message":msg,"sender":ip})
        """
        with cls._put_lock:
            while True:
                try:
                    cls._fifo.put_nowait(action)
                    return
                except queue.Full:
                    try:
                        stale = cls._fifo.get_nowait()
                    except queue.Empty:
                        continue
                    cls.dropped += 1
                    logger.debug("event queue full, dropped %s", stale.get("type"))

    # ── main-loop consumer ─────────────────────────────────────────────
    @classmethod
    def poll(cls) -> Action | None:
        """Return next queued action or None (non-blocking)."""
        try:
            return cls._fifo.get_nowait()
        except queue.Empty:
            return None

    @classmethod
    def pending(cls) -> int:
        return cls._fifo.qsize()

    @classmethod
    def clear(cls) -> None:
        while cls.poll() is not None:
            pass
        cls.dropped = 0

    # ── internal translator ───────────────────────────────────────────
    @staticmethod
    def _translate_pygame(event) -> Action | None:
        if event.type == QUIT:
            return {"type": "quit"}

        if event.type == KEYDOWN:
            if event.key in (K_ESCAPE, K_q):
                return {"type": "quit"}
            if event.key == K_i:
                return {"type": "toggle_overlay"}
            if event.key == K_f:
                return {"type": "toggle_fullscreen"}
            if event.key == K_l:
                return {"type": "toggle_listening"}

        return None
