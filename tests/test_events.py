"""EventManager handoff queue."""

from __future__ import annotations

import threading

import pytest

import config
from events import EventManager


@pytest.fixture(autouse=True)
def empty_queue():
    EventManager.clear()
    yield
    EventManager.clear()


def test_poll_is_non_blocking_when_empty():
    assert EventManager.poll() is None


def test_fifo_order():
    for i in range(5):
        EventManager.post({"type": "control", "seq": i})
    assert [EventManager.poll()["seq"] for _ in range(5)] == list(range(5))
    assert EventManager.poll() is None


def test_overflow_drops_oldest_keeps_newest():
    extra = 10
    total = config.EVENT_QUEUE_SIZE + extra
    for i in range(total):
        EventManager.post({"type": "control", "seq": i})

    assert EventManager.pending() == config.EVENT_QUEUE_SIZE
    assert EventManager.dropped == extra

    seen = []
    while (act := EventManager.poll()):
        seen.append(act["seq"])
    assert seen == list(range(extra, total))


def test_concurrent_posters_never_block():
    def flood(base):
        for i in range(500):
            EventManager.post({"type": "control", "seq": base + i})

    threads = [threading.Thread(target=flood, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
        assert not t.is_alive()

    assert EventManager.pending() == config.EVENT_QUEUE_SIZE
    assert EventManager.dropped == 4 * 500 - config.EVENT_QUEUE_SIZE
