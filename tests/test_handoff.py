"""Listener → main loop handoff under load: no torn orientation triples."""

from __future__ import annotations

import threading
import time

import pytest

from codec import ControlMessage, decode, encode
from events import EventManager
from reconciler import SessionReconciler
from smoothing import OrientationSmoother

MOVIE = "file:///storage/movies/360-test1.mp4"


class StillEngine:
    locator = ""

    def current_position_ms(self) -> int:
        return 0

    def seek_to(self, ms: int) -> None:
        pass

    def load_resource(self, locator: str) -> None:
        self.locator = locator


@pytest.fixture(autouse=True)
def empty_queue():
    EventManager.clear()
    yield
    EventManager.clear()


def test_render_thread_never_sees_mixed_axes():
    n = 2000
    rec = SessionReconciler(StillEngine())
    rec.apply(ControlMessage(MOVIE))
    smoother = OrientationSmoother(rec.session, factor=0.25)

    torn: list[tuple] = []
    done = threading.Event()

    def produce():
        for i in range(n):
            # round-trip through the wire format like a real datagram
            msg = decode(encode(ControlMessage(MOVIE, 0, (float(i),) * 3)))
            EventManager.post({"type": "control", "message": msg, "sender": "test"})
        done.set()

    def observe():
        while not done.is_set() or EventManager.pending():
            for triple in (smoother.smoothed_orientation(), smoother.target()):
                if len(set(triple)) != 1:
                    torn.append(triple)

    producer = threading.Thread(target=produce)
    observer = threading.Thread(target=observe)
    producer.start()
    observer.start()

    # render/update loop at its own cadence
    deadline = time.monotonic() + 10.0
    while time.monotonic() < deadline:
        while (act := EventManager.poll()):
            rec.apply(act["message"], act["sender"])
        smoother.step()
        if done.is_set() and not EventManager.pending():
            break
        time.sleep(0.0005)

    producer.join(timeout=5)
    observer.join(timeout=5)

    assert not torn
    # newest message always survives the bounded queue
    assert rec.session.target_orientation == (float(n - 1),) * 3
