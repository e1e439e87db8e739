# =========  video_player.py  =========
"""
GStreamer playback engine for the VR player (Pi 3 B+ and up, or desktop)

Public API
----------
load_resource(locator)   raises LoadError; a locator that fails validation
                         keeps the old pipeline, a later failure leaves
                         nothing loaded
decode_frame()  → latest frame (HxWx3 uint8) or None
current_position_ms()
seek_to(ms)
duration_ms()
close()
Properties
----------
.locator  → URI of the loaded resource ("" when nothing is loaded)
"""
from __future__ import annotations

import logging
import os
import queue
import threading
import urllib.parse
import urllib.request

import av
import gi
import numpy as np
gi.require_version("Gst", "1.0")
from gi.repository import Gst, GLib

from reconciler import LoadError

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http", "https", "rtsp", "rtmp", "udp", "srt")


# ── locator helpers ────────────────────────────────────────────────────────
def to_uri(locator: str) -> str:
    """Plain filesystem paths become file:// URIs; URIs pass through."""
    if "://" in locator:
        return locator
    return Gst.filename_to_uri(os.path.abspath(locator))


def local_path(uri: str) -> str | None:
    parts = urllib.parse.urlsplit(uri)
    if parts.scheme != "file":
        return None
    return urllib.request.url2pathname(parts.path)


def _probe(path: str) -> int:
    """Duration in ms of the first video stream; LoadError if unusable."""
    try:
        with av.open(path) as c:
            v = next((s for s in c.streams if s.type == "video"), None)
            if v is None:
                raise LoadError(f"no video stream in {path}")
            if v.duration:
                return int(v.duration * v.time_base * 1000)
            if c.duration:
                return int(c.duration * 1000 / av.time_base)
            return 0
    except LoadError:
        raise
    except Exception as exc:
        raise LoadError(f"cannot open {path}: {exc}") from exc


def validate(locator: str) -> tuple[str, int]:
    """Return (uri, duration_ms) or raise LoadError without touching playback."""
    uri = to_uri(locator)
    if not Gst.uri_is_valid(uri):
        raise LoadError(f"not a valid URI: {locator!r}")
    path = local_path(uri)
    if path is not None:
        if not os.path.isfile(path):
            raise LoadError(f"no such file: {path}")
        return uri, _probe(path)
    if Gst.uri_get_protocol(uri) not in _REMOTE_SCHEMES:
        raise LoadError(f"unsupported scheme in {locator!r}")
    return uri, 0


# ────────────────────────────────────────────────────────────────────────────
class VideoPlayer:
    def __init__(self):
        Gst.init(None)

        # build a playbin
        self.player = Gst.ElementFactory.make("playbin", "player")

        # try to build the GPU-accelerated bin first
        self._vsink = None
        video_sink  = self._build_hw_sink() or self._build_sw_sink()
        self.player.set_property("video-sink", video_sink)
        self.player.set_property("audio-sink",
                                 Gst.ElementFactory.make("autoaudiosink", "aud"))

        # state
        self._q, self._last = queue.Queue(maxsize=1), None
        self._w = self._h = 0
        self._duration_ms = 0
        self.locator = ""
        self._ml  = None
        self._ml_thread = None
        self._watching = False
        self._bus_handler = 0

    # ── sink builders ───────────────────────────────────────────────────────
    def _build_hw_sink(self):
        """
        Pi-optimised pipeline:
          H.264 → GPU decode (v4l2h264dec) → DMAbuf → videoconvert
          → RGB16_LE → 1-buffer leaky queue → appsink (sync = True)
        Returns a Gst.Bin or None if the plugins are missing.
        """
        desc = (
            "h264parse ! "
            "v4l2h264dec capture-io-mode=dmabuf-import ! "
            "video/x-raw(memory:DMABuf),format=NV12 ! "
            "videoconvert ! "
            "video/x-raw,format=RGB16_LE ! "
            "queue max-size-buffers=1 leaky=downstream ! "
            "appsink name=vsink emit-signals=true "
            "max-buffers=2 drop=true sync=true "
            "caps=video/x-raw,format=RGB16_LE"
        )
        try:
            bin_ = Gst.parse_bin_from_description(desc, True)
            self._vsink = bin_.get_by_name("vsink")
            self._vsink.connect("new-sample", self._on_sample)
            return bin_
        except GLib.Error as exc:
            logger.info("hardware decode unavailable (%s), using software sink", exc)
            return None

    def _build_sw_sink(self):
        """Fallback: plain RGB appsink (software conversion)."""
        vs = Gst.ElementFactory.make("appsink", "vsink")
        vs.set_property("emit-signals", True)
        vs.set_property("max-buffers", 2)
        vs.set_property("drop", True)
        vs.set_property("sync", True)
        vs.set_property("caps", Gst.Caps.from_string("video/x-raw,format=RGB"))
        vs.connect("new-sample", self._on_sample)
        self._vsink = vs
        return vs

    # ── PlaybackEngine API ──────────────────────────────────────────────────
    def load_resource(self, locator: str):
        """
        Replace whatever is playing with *locator*, starting at 0 ms.
        Validation happens before the current pipeline is torn down.
        """
        uri, dur_ms = validate(locator)

        self.close()
        while not self._q.empty():
            self._q.get_nowait()

        # past this point the old pipeline is gone; any failure leaves
        # nothing loaded (self.locator == "")
        try:
            self._open(locator, uri, dur_ms)
        except LoadError:
            self.close()
            raise
        except Exception as exc:
            self.close()
            raise LoadError(f"{locator}: {exc}") from exc

    def _open(self, locator: str, uri: str, dur_ms: int):
        self.player.set_property("uri", uri)
        self.player.set_state(Gst.State.PAUSED)

        # wait for preroll / caps
        bus = self.player.get_bus()
        msg = bus.timed_pop_filtered(
            5 * Gst.SECOND,
            Gst.MessageType.ASYNC_DONE | Gst.MessageType.ERROR,
        )
        if msg is None or msg.type == Gst.MessageType.ERROR:
            err = msg.parse_error()[0].message if msg else "preroll timed out"
            raise LoadError(f"{locator}: {err}")

        caps = self._vsink.get_static_pad("sink").get_current_caps()
        if caps is None:
            raise LoadError(f"{locator}: no video stream negotiated")
        st = caps.get_structure(0)
        self._w, self._h = st.get_int("width")[1], st.get_int("height")[1]

        self.player.set_state(Gst.State.PLAYING)
        self.locator = locator
        self._duration_ms = dur_ms or self._query_duration_ms()

        try:
            data = self._q.get(timeout=2.0)
            self._last = self._bytes_to_arr(data)
        except queue.Empty:
            self._last = None

        # bus watch in a side loop
        self._ml = GLib.MainLoop()
        bus.add_signal_watch()
        self._watching = True
        self._bus_handler = bus.connect("message", self._on_bus_msg)
        self._ml_thread = threading.Thread(target=self._ml.run, daemon=True)
        self._ml_thread.start()
        logger.info("loaded %s (%d ms, %dx%d)", uri, self._duration_ms, self._w, self._h)

    def current_position_ms(self) -> int:
        ok, pos = self.player.query_position(Gst.Format.TIME)
        return int(pos // Gst.MSECOND) if ok else 0

    def seek_to(self, ms: int):
        self.player.seek_simple(
            Gst.Format.TIME,
            Gst.SeekFlags.FLUSH | Gst.SeekFlags.ACCURATE,
            int(max(0, ms)) * Gst.MSECOND,
        )

    def duration_ms(self) -> int:
        return self._duration_ms

    def decode_frame(self):
        data = None
        while True:
            try:
                data = self._q.get_nowait()
            except queue.Empty:
                break
        if data is not None:
            self._last = self._bytes_to_arr(data)
        return self._last

    def close(self):
        if self._ml:
            self._ml.quit()
            self._ml = None
        if self._ml_thread and threading.current_thread() is not self._ml_thread:
            self._ml_thread.join(timeout=0.5)
        self._ml_thread = None
        if self._watching:
            bus = self.player.get_bus()
            bus.disconnect(self._bus_handler)
            bus.remove_signal_watch()
            self._watching = False
        self.player.set_state(Gst.State.NULL)
        self.locator = ""
        self._last = None
        self._duration_ms = 0

    # ── internals ───────────────────────────────────────────────────────────
    def _query_duration_ms(self) -> int:
        ok, dur = self.player.query_duration(Gst.Format.TIME)
        return int(dur // Gst.MSECOND) if ok else 0

    def _bytes_to_arr(self, data: bytes):
        """
        Convert RGB16_LE (5-6-5) → RGB888 uint8.
        Fallback RGB888 data is handled transparently.
        """
        if len(data) == self._w * self._h * 2:     # RGB565
            px = np.frombuffer(data, np.uint16).reshape((self._h, self._w))
            r = ((px >> 11) & 0x1F).astype(np.uint8) << 3
            g = ((px >> 5) & 0x3F).astype(np.uint8) << 2
            b = (px & 0x1F).astype(np.uint8) << 3
            return np.stack((r, g, b), axis=-1)
        stride = len(data) // self._h
        rows   = np.frombuffer(data, np.uint8).reshape((self._h, stride))
        return np.ascontiguousarray(rows[:, : self._w * 3]
                                    .reshape((self._h, self._w, 3)))

    def _on_sample(self, sink):
        samp = sink.emit("pull-sample")
        if samp:
            buf = samp.get_buffer()
            ok, mi = buf.map(Gst.MapFlags.READ)
            if ok:
                try:
                    self._q.put_nowait(bytes(mi.data))
                except queue.Full:
                    pass
                buf.unmap(mi)
        return Gst.FlowReturn.OK

    def _on_bus_msg(self, bus, msg):
        if msg.type == Gst.MessageType.EOS:
            logger.info("end of stream: %s", self.locator)
        elif msg.type == Gst.MessageType.ERROR:
            err, dbg = msg.parse_error()
            logger.error("GStreamer error: %s (%s)", err.message, dbg)
        return True
