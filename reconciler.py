"""
reconciler.py – apply remote control messages to the live playback session

A message says *what* should be playing, *where* in it, and *which way*
the camera should face.  reconcile() compares that against the session and
the playback engine and performs the smallest corrective action:

  1. different resource  → reload (nothing else from that message is used)
  2. position off by more than the drift tolerance → seek
  3. orientation present → new smoothing target

Runs on the main (render) thread only.  Never blocks.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import config
from codec import ControlMessage, Orientation

logger = logging.getLogger(__name__)

ZERO: Orientation = (0.0, 0.0, 0.0)


class LoadError(RuntimeError):
    """The playback engine rejected a resource locator."""


class PlaybackEngine(Protocol):
    locator: str                          # "" when nothing is loaded

    def current_position_ms(self) -> int: ...

    def seek_to(self, ms: int) -> None: ...

    def load_resource(self, locator: str) -> None: ...


class Decision(enum.Flag):
    NOOP = 0
    RELOAD = enum.auto()
    SEEK = enum.auto()
    RETARGET = enum.auto()


@dataclass
class SessionState:
    current_resource_locator: str = ""
    current_orientation: Orientation = ZERO
    target_orientation: Orientation = ZERO


def reconcile(
    msg: ControlMessage,
    session: SessionState,
    engine: PlaybackEngine,
    *,
    drift_tolerance_ms: int = config.DRIFT_TOLERANCE_MS,
) -> Decision:
    """
    Bring *session* / *engine* in line with *msg*.  Raises LoadError when
    the engine refuses a new resource.  The session is left untouched
    unless the engine dropped the old resource on the way, in which case
    the session is marked empty so the next message reloads.
    """
    if msg.resource_locator != session.current_resource_locator:
        try:
            engine.load_resource(msg.resource_locator)
        except LoadError:
            if not engine.locator:
                session.current_resource_locator = ""
            raise
        session.current_resource_locator = msg.resource_locator
        session.current_orientation = ZERO
        session.target_orientation = ZERO
        return Decision.RELOAD

    decision = Decision.NOOP

    if msg.target_position_ms is not None:
        current = int(engine.current_position_ms())
        if abs(msg.target_position_ms - current) > drift_tolerance_ms:
            engine.seek_to(msg.target_position_ms)
            decision |= Decision.SEEK

    if msg.target_orientation is not None:
        session.target_orientation = tuple(msg.target_orientation)
        decision |= Decision.RETARGET

    return decision


# ── owning wrapper used by the host ────────────────────────────────────────
@dataclass
class SessionReconciler:
    engine: PlaybackEngine
    session: SessionState = field(default_factory=SessionState)
    drift_tolerance_ms: int = config.DRIFT_TOLERANCE_MS

    last_decision: Decision = Decision.NOOP
    last_error: str = ""
    last_sender: str = ""
    last_message_at: float = 0.0
    applied: int = 0

    def apply(self, msg: ControlMessage, sender: str = "") -> Decision:
        self.last_sender = sender
        self.last_message_at = time.time()
        try:
            decision = reconcile(
                msg, self.session, self.engine,
                drift_tolerance_ms=self.drift_tolerance_ms,
            )
        except LoadError as exc:
            self.last_error = str(exc)
            raise

        self.applied += 1
        self.last_decision = decision
        self.last_error = ""
        if decision:
            logger.info("%s ← %s (%s)", describe(decision), msg.resource_locator, sender or "local")
        return decision

    def position_ms(self) -> int:
        if not self.session.current_resource_locator:
            return 0
        return int(self.engine.current_position_ms())

    def snapshot(self) -> dict:
        s = self.session
        return {
            "resource":           s.current_resource_locator,
            "position_ms":        self.position_ms(),
            "current_orientation": list(s.current_orientation),
            "target_orientation":  list(s.target_orientation),
            "last_decision":      describe(self.last_decision),
            "last_error":         self.last_error,
            "last_sender":        self.last_sender,
            "messages_applied":   self.applied,
        }


def describe(d: Optional[Decision]) -> str:
    """Human-readable decision, e.g. "seek+retarget"."""
    if not d:
        return "noop"
    return "+".join(m.name.lower() for m in Decision if m and m in d)