"""Shared runtime constants for the segclock display clock.

This is the canonical source of truth for display limits and runtime
defaults.  Other modules should import from here rather than defining
their own copies.
"""

# ---------------------------------------------------------------------------
# Display limits
# ---------------------------------------------------------------------------

FRAME_SIZE = 4
MIN_BRIGHTNESS = 1
MAX_BRIGHTNESS = 7
DEFAULT_BRIGHTNESS = 5

# ---------------------------------------------------------------------------
# Serial bridge defaults
# ---------------------------------------------------------------------------

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD = 115200
DEFAULT_TIMEOUT = 1.0

# ---------------------------------------------------------------------------
# Clock / sync defaults
# ---------------------------------------------------------------------------

DEFAULT_TIMEZONE = "America/Sao_Paulo"
TICK_INTERVAL_S = 60.0
SYNC_POLL_INTERVAL_S = 0.5
SYNC_TIMEOUT_S = 120.0

# ---------------------------------------------------------------------------
# Network / HTTP defaults
# ---------------------------------------------------------------------------

DEFAULT_PROBE_HOST = "1.1.1.1"
DEFAULT_PROBE_PORT = 53
NETWORK_CONNECT_TIMEOUT_S = 30.0
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 8080
