"""Web remote query → action mapping."""

from __future__ import annotations

import pytest

from codec import ControlMessage, DecodeError
from web_remote import action_for

MOVIE = "file:///storage/movies/360-test1.mp4"


@pytest.mark.parametrize(
    "query, expected",
    [
        ("cmd=listen", {"type": "start_listening"}),
        ("cmd=listen&port=12000", {"type": "start_listening", "port": 12000}),
        ("cmd=stop", {"type": "stop_listening"}),
        ("cmd=toggle", {"type": "toggle_overlay"}),
        ("cmd=quit", {"type": "quit"}),
    ],
)
def test_simple_commands(query, expected):
    assert action_for(query) == expected


def test_send_decodes_payload():
    act = action_for(f"cmd=send&msg={MOVIE}+15000+12.5+-3.0+0.0")
    assert act == {
        "type": "control",
        "message": ControlMessage(MOVIE, 15000, (12.5, -3.0, 0.0)),
        "sender": "web",
    }


def test_send_with_bad_payload_raises():
    with pytest.raises(DecodeError):
        action_for("cmd=send&msg=")
    with pytest.raises(DecodeError):
        action_for(f"cmd=send&msg={MOVIE}+soon")


def test_unknown_command():
    assert action_for("cmd=rewind") is None
    with pytest.raises(ValueError):
        action_for("cmd=listen&port=abc")
