#!/usr/bin/env python3
"""
web_remote.py  –  web UI + diagnostics + remote control for the VR player

Endpoints
---------
/               → HTML page with buttons, session state, diagnostics, link to /log
/state          → JSON object of the playback session + listener state
/overlay        → JSON array of the on-screen overlay lines
/diag, /data    → JSON object of diagnostic metrics
/action?cmd=…   → listen, stop, toggle, quit, send&msg=<payload>
/log            → contents of the runtime log (if present)
"""

from __future__ import annotations
import http.server
import json
import logging
import platform
import socketserver
import threading
import time
import traceback
import urllib.parse
from typing import TYPE_CHECKING, Any

import psutil

import codec
import config
from events   import EventManager
from overlays import overlay_lines

if TYPE_CHECKING:                       # avoid circular import at runtime
    from app import VRPlayer

logger = logging.getLogger(__name__)

# ── diagnostics refresh cadence ───────────────────────────────────────────
_last_diag_time = 0.0
_diag_interval  = getattr(config, "DIAG_REFRESH_INTERVAL", 1.0)

# ── global diagnostic store ───────────────────────────────────────────────
monitor_data: dict[str, Any] = {
    "cpu_percent":       0.0,
    "cpu_per_core":      [],
    "mem_used":          "0 MB",
    "mem_total":         "0 MB",
    "script_uptime":     "0d 00:00:00",
    "machine_uptime":    "0d 00:00:00",
    "load_avg":          "",
    "last_http_crash":   "",
    "python_version":    platform.python_version(),
}

_script_start = time.monotonic()
_boot_time    = psutil.boot_time()


# ── helpers ────────────────────────────────────────────────────────────────
def _fmt_duration(secs: float) -> str:
    d, rem = divmod(int(secs), 86400)
    h, rem = divmod(rem, 3600)
    m, s   = divmod(rem, 60)
    return f"{d}d {h:02}:{m:02}:{s:02}"


def _maybe_update_diagnostics() -> None:
    global _last_diag_time
    now = time.monotonic()
    if now - _last_diag_time >= _diag_interval:
        _last_diag_time = now
        _update_diagnostics()


def _update_diagnostics() -> None:
    """Refresh CPU, memory, uptime and load in `monitor_data`."""
    per_core = psutil.cpu_percent(percpu=True)
    avg_cpu  = sum(per_core) / len(per_core) if per_core else 0.0
    monitor_data["cpu_percent"]  = round(avg_cpu, 1)
    monitor_data["cpu_per_core"] = [round(p, 1) for p in per_core]
    vm = psutil.virtual_memory()
    monitor_data["mem_used"]  = f"{vm.used // 1024**2} MB"
    monitor_data["mem_total"] = f"{vm.total // 1024**2} MB"
    now = time.monotonic()
    monitor_data["script_uptime"]  = _fmt_duration(now - _script_start)
    monitor_data["machine_uptime"] = _fmt_duration(time.time() - _boot_time)
    try:
        monitor_data["load_avg"] = ", ".join(f"{x:.2f}" for x in psutil.getloadavg())
    except (OSError, AttributeError):
        monitor_data["load_avg"] = "N/A"


def action_for(query: str) -> dict | None:
    """
    Map an /action query string to an EventManager action.  Raises
    ValueError for bad input, returns None for unknown commands.
    """
    qs  = urllib.parse.parse_qs(query)
    cmd = qs.get("cmd", [""])[0]

    if cmd == "listen":
        port = qs.get("port", [""])[0]
        act: dict = {"type": "start_listening"}
        if port:
            act["port"] = int(port)
        return act
    if cmd == "stop":
        return {"type": "stop_listening"}
    if cmd == "toggle":
        return {"type": "toggle_overlay"}
    if cmd == "quit":
        return {"type": "quit"}
    if cmd == "send":
        # same path a datagram takes, minus the socket
        msg = codec.decode(qs.get("msg", [""])[0])
        return {"type": "control", "message": msg, "sender": "web"}
    return None


# ── reusable threaded HTTP server ──────────────────────────────────────────
class ReusableTCPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads      = True
    allow_reuse_address = True


# ── request handler ────────────────────────────────────────────────────────
class RemoteHandler(http.server.BaseHTTPRequestHandler):
    def log_message(self, fmt, *args):
        logger.debug("%s " + fmt, self.address_string(), *args)

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        path, qs = parsed.path, parsed.query
        player: "VRPlayer" = self.server.player   # type: ignore[attr-defined]

        if path == "/":
            return self._serve_html()
        if path == "/state":
            return self._serve_json(player.status())
        if path == "/overlay":
            st = player.status()
            return self._serve_json(overlay_lines(st, st["listening_port"], st["duration_ms"]))
        if path in ("/diag", "/data"):
            _maybe_update_diagnostics()
            return self._serve_json(monitor_data)
        if path == "/log":
            return self._serve_log()
        if path == "/action":
            return self._serve_action(qs)

        self.send_error(404, "Not found")

    # ── helpers for each route ───────────────────────────────────────────
    def _serve_html(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(HTML_PAGE.encode("utf-8"))

    def _serve_json(self, obj: Any):
        b = json.dumps(obj).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(b)))
        self.end_headers()
        self.wfile.write(b)

    def _serve_log(self):
        try:
            with open(config.LOG_FILE, "rb") as f:
                data = f.read()
        except OSError:
            return self.send_error(404, "Log file not found")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _serve_action(self, query: str):
        try:
            act = action_for(query)
        except ValueError as exc:
            return self.send_error(400, str(exc))
        if act is None:
            return self.send_error(400, "Unknown cmd")

        EventManager.post(act)
        self.send_response(204)
        self.end_headers()


# ── simple HTML UI ─────────────────────────────────────────────────────────
HTML_PAGE = """
<!doctype html><html><head><meta charset="utf-8">
<title>VR Player Remote & Diagnostics</title>
<style>
 body{background:#000;color:#0f0;font-family:monospace;padding:1em;}
 a.button,button{display:inline-block;margin:4px;padding:6px 12px;border:1px solid #0f0;
          text-decoration:none;color:#0f0;background:#000;font-family:monospace;}
 input{background:#000;color:#0f0;border:1px solid #0f0;width:40em;}
 pre{margin:0.5em 0;font-family:monospace;}
</style></head><body>
<h2>VR Player Remote</h2>
<a class="button" href="/action?cmd=listen">Start listening</a>
<a class="button" href="/action?cmd=stop">Stop listening</a>
<a class="button" href="/action?cmd=toggle">Toggle overlay</a>
<a class="button" href="/action?cmd=quit">Quit</a>
<a class="button" href="/log">View log</a>

<form action="/action" method="get">
 <input type="hidden" name="cmd" value="send">
 <input name="msg" placeholder="file:///movies/360-test1.mp4 15000 12.5 -3.0 0.0">
 <button type="submit">Send</button>
</form>

<div><h3>Session</h3><pre id="overlay"></pre></div>
<div><h3>Diagnostics</h3><pre id="diag"></pre></div>

<script>
 async function refreshUI(){
   try {
     let o  = await fetch('/overlay'); let ov = await o.json();
     document.getElementById('overlay').textContent = ov.join('\\n');
     let d  = await fetch('/diag');    let dg = await d.json();
     let txt = '';
     for (let [k,v] of Object.entries(dg)){
       txt += k.padEnd(20,' ') + v + '\\n';
     }
     document.getElementById('diag').textContent = txt;
   } catch(e){
     console.error(e);
   }
 }
 setInterval(refreshUI, 200);
 refreshUI();
</script>
</body></html>
"""


# ── server bootstrap with auto-restart ────────────────────────────────────
def start(player: "VRPlayer", port: int = getattr(config, "WEB_PORT", 8080)):
    def _serve_loop():
        while True:
            try:
                with ReusableTCPServer(("", port), RemoteHandler) as httpd:
                    httpd.player = player
                    httpd.serve_forever()
            except Exception:
                monitor_data["last_http_crash"] = traceback.format_exc()
                logger.exception("web remote crashed, restarting")
                time.sleep(1)

    threading.Thread(target=_serve_loop, name="web-remote", daemon=True).start()
    logger.info("web UI & diagnostics listening on port %d", port)
