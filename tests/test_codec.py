"""Wire format decode / encode."""

from __future__ import annotations

import pytest

from codec import (
    ControlMessage,
    DecodeError,
    EmptyMessage,
    MalformedField,
    decode,
    encode,
)

MOVIE = "file:///storage/movies/360-test1.mp4"


def test_decode_locator_only():
    msg = decode(MOVIE.encode())
    assert msg == ControlMessage(MOVIE)
    assert msg.target_position_ms is None
    assert msg.target_orientation is None


def test_decode_locator_and_position():
    msg = decode(f"{MOVIE} 15000".encode())
    assert msg.resource_locator == MOVIE
    assert msg.target_position_ms == 15000
    assert msg.target_orientation is None


def test_decode_full_message():
    msg = decode(f"{MOVIE} 15000 12.5 -3.0 0.0".encode())
    assert msg.target_position_ms == 15000
    assert msg.target_orientation == (12.5, -3.0, 0.0)


def test_decode_trims_null_padding_and_newline():
    raw = f"{MOVIE} 250\n".encode() + b"\x00" * 64
    msg = decode(raw)
    assert msg.resource_locator == MOVIE
    assert msg.target_position_ms == 250


def test_partial_orientation_is_ignored():
    msg = decode(f"{MOVIE} 100 1.0 2.0")
    assert msg.target_position_ms == 100
    assert msg.target_orientation is None


def test_decode_accepts_str():
    assert decode(f"  {MOVIE}   42 ").target_position_ms == 42


@pytest.mark.parametrize("raw", [b"", b"   ", b"\x00\x00\x00", b"\n\t \x00"])
def test_empty_payloads(raw):
    with pytest.raises(EmptyMessage):
        decode(raw)


@pytest.mark.parametrize(
    "raw, field",
    [
        (f"{MOVIE} soon", "position_ms"),
        (f"{MOVIE} 12.5", "position_ms"),
        (f"{MOVIE} -5", "position_ms"),
        (f"{MOVIE} +5", "position_ms"),
        (f"{MOVIE} 1_000", "position_ms"),
        (f"{MOVIE} 2147483648", "position_ms"),
        (f"{MOVIE} 99999999999999999999", "position_ms"),
        (f"{MOVIE} 100 left 0 0", "yaw"),
        (f"{MOVIE} 100 0 up 0", "pitch"),
        (f"{MOVIE} 100 0 0 nan", "roll"),
        (f"{MOVIE} 0 1e39 0 0", "yaw"),
        (f"{MOVIE} 0 0 -1e39 0", "pitch"),
        (f"{MOVIE} 0 0 0 inf", "roll"),
    ],
)
def test_malformed_fields(raw, field):
    with pytest.raises(MalformedField) as info:
        decode(raw)
    assert info.value.field == field
    assert isinstance(info.value, DecodeError)


def test_invalid_utf8_is_malformed():
    with pytest.raises(MalformedField):
        decode(b"\xff\xfe\xfd 100")


def test_orientation_is_float32_rounded():
    msg = decode(f"{MOVIE} 0 0.1 0 0")
    assert msg.target_orientation[0] == pytest.approx(0.1, abs=1e-7)
    assert msg.target_orientation[0] != 0.1


@pytest.mark.parametrize(
    "payload",
    [
        MOVIE,
        f"{MOVIE} 15000",
        f"{MOVIE} 15000 12.5 -3.0 0.0",
        "clip.mp4 0 359.5 -89.25 0.1",
    ],
)
def test_encode_restores_canonical_payload(payload):
    assert encode(decode(payload.encode())) == payload.encode()


def test_encode_omits_only_a_suffix():
    with pytest.raises(ValueError):
        encode(ControlMessage(MOVIE, None, (1.0, 2.0, 3.0)))


def test_message_rejects_bad_fields():
    with pytest.raises(ValueError):
        ControlMessage("")
    with pytest.raises(ValueError):
        ControlMessage("two words")
    with pytest.raises(ValueError):
        ControlMessage(MOVIE, -1)
    with pytest.raises(ValueError):
        ControlMessage(MOVIE, 2**31)
    with pytest.raises(ValueError):
        ControlMessage(MOVIE, 0, (float("inf"), 0.0, 0.0))


def test_largest_position_is_accepted():
    assert decode(f"{MOVIE} 2147483647").target_position_ms == 2**31 - 1


def test_largest_float32_angle_is_accepted():
    msg = decode(f"{MOVIE} 0 3.4e38 0 0")
    assert msg.target_orientation[0] == pytest.approx(3.4e38, rel=1e-6)


def test_integer_angles_reencode_with_a_decimal():
    assert encode(decode(f"{MOVIE} 15000 90 0 0")) == f"{MOVIE} 15000 90.0 0.0 0.0".encode()
