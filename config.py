# config.py
"""
Configuration settings for the VR remote player.
"""

FPS = 60

# ── Remote control (UDP broadcast) ─────────────────────────────────────────

# Port the broadcast listener binds to (all interfaces)
UDP_PORT = 11111

# Address the sender tool broadcasts to
BROADCAST_ADDR = "255.255.255.255"

# Receive buffer per datagram, in bytes
RECV_BUFFER_SIZE = 15000

# Seconds a blocked receive waits before re-checking the stop flag
RECV_TIMEOUT = 0.5

# Start listening as soon as the player window is up
LISTEN_ON_START = True

# Max undelivered events between listener and main loop (oldest dropped)
EVENT_QUEUE_SIZE = 64

# ── Reconciliation / smoothing ─────────────────────────────────────────────

# Playback drift (ms) tolerated before a seek is issued
DRIFT_TOLERANCE_MS = 100

# Fraction of the remaining orientation distance covered per frame
SMOOTHING_FACTOR = 0.1

# ── Display settings ───────────────────────────────────────────────────────

FULLSCREEN = False
WINDOWED_SIZE = (1280, 720)

# Internal render resolution of the 360° viewport (scaled up to the window)
RENDER_SIZE = (640, 360)

# Horizontal field of view of the viewport, degrees
FIELD_OF_VIEW = 90.0

# ── Overlay ────────────────────────────────────────────────────────────────

SHOW_OVERLAYS = True

# ── Web remote / diagnostics ───────────────────────────────────────────────

WEB_PORT = 8080
DIAG_REFRESH_INTERVAL = 1.0

# ── Logging ────────────────────────────────────────────────────────────────

LOG_FILE = "runtime.log"
LOG_LEVEL = "INFO"
