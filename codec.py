"""
codec.py – text wire format of the remote-control datagrams

    <locator> [<position_ms> [<yaw> <pitch> <roll>]]

Tokens are whitespace separated; trailing whitespace / NUL padding is
ignored.  Decoding is pure: no I/O, no logging, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

Orientation = Tuple[float, float, float]      # yaw, pitch, roll (degrees)

# largest position a sender may name (a signed 32-bit int of ms)
MAX_POSITION_MS = 2**31 - 1
_F32_MAX = float(np.finfo(np.float32).max)


# ── errors ─────────────────────────────────────────────────────────────────
class DecodeError(ValueError):
    """Datagram could not be turned into a ControlMessage."""


class EmptyMessage(DecodeError):
    def __init__(self) -> None:
        super().__init__("empty control message")


class MalformedField(DecodeError):
    def __init__(self, field: str, token: str) -> None:
        super().__init__(f"malformed {field}: {token!r}")
        self.field = field
        self.token = token


# ── message ────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ControlMessage:
    resource_locator: str
    target_position_ms: Optional[int] = None
    target_orientation: Optional[Orientation] = None

    def __post_init__(self) -> None:
        if not self.resource_locator or any(c.isspace() for c in self.resource_locator):
            raise ValueError("resource locator must be a single non-empty token")
        pos = self.target_position_ms
        if pos is not None and not 0 <= pos <= MAX_POSITION_MS:
            raise ValueError(f"position must be within 0..{MAX_POSITION_MS}")
        ori = self.target_orientation
        if ori is not None and len(ori) != 3:
            raise ValueError("orientation must be a (yaw, pitch, roll) triple")
        if ori is not None and not all(np.isfinite(v) and abs(v) <= _F32_MAX for v in ori):
            raise ValueError("orientation angles must be finite float32 values")


# ── helpers ────────────────────────────────────────────────────────────────
def _parse_position(token: str) -> int:
    # plain ASCII digits only: no sign, no "_" separators, no other scripts
    if not (token.isascii() and token.isdigit()):
        raise MalformedField("position_ms", token)
    ms = int(token)
    if ms > MAX_POSITION_MS:
        raise MalformedField("position_ms", token)
    return ms


def parse_orientation(tokens: Sequence[str]) -> Orientation:
    """Parse exactly three decimal tokens into a float32-rounded triple."""
    out = []
    for name, tok in zip(("yaw", "pitch", "roll"), tokens):
        try:
            val = float(tok)
        except ValueError:
            raise MalformedField(name, tok) from None
        # 1e39 is a finite double but would round to inf as float32
        if not (np.isfinite(val) and abs(val) <= _F32_MAX):
            raise MalformedField(name, tok)
        out.append(float(np.float32(val)))
    if len(out) != 3:
        raise ValueError("need yaw, pitch and roll")
    return out[0], out[1], out[2]


def _fmt_float(value: float) -> str:
    # shortest text that reads back to the same float32
    return np.format_float_positional(np.float32(value), trim="0")


# ── public API ─────────────────────────────────────────────────────────────
def decode(raw: bytes | str) -> ControlMessage:
    """Decode one datagram payload.  Raises EmptyMessage / MalformedField."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedField("payload", repr(bytes(raw)[:32])) from None
    else:
        text = raw

    tokens = text.rstrip(" \t\r\n\x00").split()
    if not tokens:
        raise EmptyMessage()

    position = _parse_position(tokens[1]) if len(tokens) > 1 else None
    orientation = parse_orientation(tokens[2:5]) if len(tokens) >= 5 else None
    return ControlMessage(tokens[0], position, orientation)


def encode(msg: ControlMessage) -> bytes:
    """
    Inverse of decode(): locator, position, yaw, pitch, roll.

    Angles are written as the shortest float32 text with at least one
    decimal (`90.0`, `-3.0`, `12.5`), so only payloads already in that form
    come back byte for byte.  `... 15000 90 0 0` decodes fine but
    re-encodes as `... 15000 90.0 0.0 0.0`.
    """
    tokens = [msg.resource_locator]
    if msg.target_position_ms is not None:
        tokens.append(str(int(msg.target_position_ms)))
        if msg.target_orientation is not None:
            tokens += [_fmt_float(v) for v in msg.target_orientation]
    elif msg.target_orientation is not None:
        raise ValueError("orientation cannot be sent without a position")
    return " ".join(tokens).encode("utf-8")
