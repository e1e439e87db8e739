#!/usr/bin/env python3
"""
broadcast.py – send a control message to every player on the LAN

    python broadcast.py file:///movies/360-test1.mp4 15000 12.5 -3.0 0.0
    python broadcast.py --host 192.168.1.255 --port 11111 movie.mp4

Same wire format as codec.encode(); equivalent to piping the text into
`socat - UDP-DATAGRAM:<bcast>:11111,broadcast`.
"""

from __future__ import annotations

import argparse
import logging
import socket
from typing import Optional, Sequence

import config
from codec import ControlMessage, encode, parse_orientation

logger = logging.getLogger(__name__)


def send_message(msg: ControlMessage, host: str = config.BROADCAST_ADDR,
                 port: int = config.UDP_PORT) -> int:
    """Encode *msg* and send it as one datagram; returns bytes sent."""
    payload = encode(msg)
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sent = sock.sendto(payload, (host, port))
    logger.debug("sent %r to %s:%d", payload, host, port)
    return sent


def build_message(locator: str, position_ms: Optional[int] = None,
                  orientation: Optional[Sequence[str]] = None) -> ControlMessage:
    ori = parse_orientation(orientation) if orientation else None
    if ori is not None and position_ms is None:
        raise ValueError("an orientation needs a position")
    return ControlMessage(locator, position_ms, ori)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Broadcast a VR player control message.")
    ap.add_argument("locator", help="resource to play, e.g. file:///movies/clip.mp4")
    ap.add_argument("position_ms", nargs="?", type=int, help="play-head target in ms")
    ap.add_argument("orientation", nargs="*", metavar="YAW PITCH ROLL",
                    help="camera offset in degrees (all three or none)")
    ap.add_argument("--host", default=config.BROADCAST_ADDR)
    ap.add_argument("--port", type=int, default=config.UDP_PORT)
    args = ap.parse_args(argv)

    if args.orientation and len(args.orientation) != 3:
        ap.error("orientation needs exactly three values: yaw pitch roll")
    try:
        msg = build_message(args.locator, args.position_ms, args.orientation)
    except ValueError as exc:
        ap.error(str(exc))

    send_message(msg, args.host, args.port)
    print(encode(msg).decode("utf-8"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
