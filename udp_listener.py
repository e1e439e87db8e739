"""
udp_listener.py – background receiver for remote-control broadcasts

One BroadcastListener owns at most one receive loop at a time.  Each loop
gets a fresh socket (ListenerState) that is never reused after the loop
exits, because stop() may have closed it under the loop's feet.

Every datagram is decoded with codec.decode() and handed to the consumer
as an action dict:

    {"type": "control",          "message": ControlMessage, "sender": ip}
    {"type": "decode_error",     "error": DecodeError,      "sender": ip}
    {"type": "listener_stopped", "error": OSError}

Send from a shell with e.g.:
    echo "file:///movies/360-test1.mp4 15000" | socat - UDP-DATAGRAM:192.168.1.255:11111,broadcast
"""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import config
import codec

logger = logging.getLogger(__name__)

Consumer = Callable[[dict], None]


# ── errors ─────────────────────────────────────────────────────────────────
class ListenError(Exception):
    """start() could not bring up a receive loop."""


class BindFailed(ListenError):
    pass


class AlreadyRunning(ListenError):
    pass


# ── per-loop state ─────────────────────────────────────────────────────────
@dataclass
class ListenerState:
    sock: socket.socket
    port: int
    running: bool = True
    thread: Optional[threading.Thread] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _closed: bool = False

    def close(self) -> None:
        """Shut down and close the socket; safe to call more than once."""
        with self.lock:
            if self._closed:
                return
            self._closed = True
        try:
            # wakes a recvfrom() parked in another thread on Linux
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()


def _open_socket(port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind(("", port))
    except OSError:
        sock.close()
        raise
    return sock


# ── listener ───────────────────────────────────────────────────────────────
class BroadcastListener:
    def __init__(
        self,
        consumer: Consumer,
        *,
        buffer_size: int = config.RECV_BUFFER_SIZE,
        recv_timeout: Optional[float] = config.RECV_TIMEOUT,
    ) -> None:
        self._consumer = consumer
        self._buffer_size = buffer_size
        self._recv_timeout = recv_timeout
        self._lock = threading.Lock()
        self._state: Optional[ListenerState] = None

    # ── public API ─────────────────────────────────────────────────────────
    @property
    def is_running(self) -> bool:
        st = self._state
        return bool(st and st.running and st.thread and st.thread.is_alive())

    @property
    def port(self) -> Optional[int]:
        st = self._state
        return st.port if st and st.running else None

    def start(self, port: int = config.UDP_PORT) -> int:
        """
        Bind a fresh socket and spawn the receive loop.  Returns the bound
        port (useful when *port* is 0).  Raises AlreadyRunning / BindFailed.
        """
        with self._lock:
            if self.is_running:
                raise AlreadyRunning(f"already listening on port {self._state.port}")
            try:
                sock = _open_socket(port)
            except OSError as exc:
                raise BindFailed(f"cannot bind UDP port {port}: {exc}") from exc
            if self._recv_timeout is not None:
                sock.settimeout(self._recv_timeout)

            st = ListenerState(sock=sock, port=sock.getsockname()[1])
            st.thread = threading.Thread(
                target=self._receive_loop, args=(st,),
                name=f"udp-listener-{st.port}", daemon=True,
            )
            self._state = st
            st.thread.start()

        logger.info("listening for UDP broadcasts on port %d", st.port)
        return st.port

    def stop(self, join: bool = False, timeout: float = 1.0) -> None:
        """
        Ask the loop to exit and force its socket closed.  Idempotent and
        callable from any thread.  With join=True, wait until the loop thread
        has finished.
        """
        with self._lock:
            st = self._state
            if st is None:
                return
            with st.lock:
                was_running = st.running
                st.running = False
            st.close()

        if was_running:
            logger.info("stopping UDP listener on port %d", st.port)
        if join and st.thread and st.thread is not threading.current_thread():
            st.thread.join(timeout)

    # ── receive loop ───────────────────────────────────────────────────────
    def _receive_loop(self, st: ListenerState) -> None:
        try:
            while st.running:
                try:
                    data, addr = st.sock.recvfrom(self._buffer_size)
                except socket.timeout:
                    continue
                except OSError as exc:
                    if not st.running:
                        break                 # closed by stop()
                    logger.error("no longer listening for UDP broadcasts: %s", exc)
                    with st.lock:
                        st.running = False
                    self._deliver(st, {"type": "listener_stopped", "error": exc}, force=True)
                    break

                if not st.running:
                    break                     # woken by stop(); drop the payload
                if not data and addr is None:
                    continue

                self._handle_datagram(st, data, addr[0] if addr else "")
        finally:
            st.close()
            logger.debug("UDP receive loop on port %d exited", st.port)

    def _handle_datagram(self, st: ListenerState, data: bytes, sender: str) -> None:
        try:
            msg = codec.decode(data)
        except codec.DecodeError as exc:
            logger.warning("bad datagram from %s: %s", sender, exc)
            self._deliver(st, {"type": "decode_error", "error": exc, "sender": sender})
            return

        logger.debug("datagram from %s: %s", sender, msg)
        self._deliver(st, {"type": "control", "message": msg, "sender": sender})

    def _deliver(self, st: ListenerState, action: dict, force: bool = False) -> None:
        # holding st.lock keeps stop() from returning mid-delivery
        with st.lock:
            if not (st.running or force):
                return
            try:
                self._consumer(action)
            except Exception:
                logger.exception("listener consumer failed on %s", action.get("type"))
