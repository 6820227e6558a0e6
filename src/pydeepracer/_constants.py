"""Internal constants shared across the library."""

import math

USER_AGENT = "pydeepracer"

LOGIN_PATH = "/login"
HOME_PATH = "/home"
DRIVE_MODE_PATH = "/api/drive_mode"
START_STOP_PATH = "/api/start_stop"
MANUAL_DRIVE_PATH = "/api/manual_drive"
BATTERY_PATH = "/api/get_battery_level"
VIDEO_ROUTE_PATH = "/route"
VIDEO_TOPIC = "/display_mjpeg"

#: Speed cap sent with every manual drive command.
MAX_SPEED: float = 0.5

#: Battery level reported while the real level is not known yet.
BATTERY_LEVEL_UNKNOWN = -1

# ------------------------------------------------------------------
# JPEG framing
# ------------------------------------------------------------------

JPEG_SOI = b"\xff\xd8"
JPEG_EOI = b"\xff\xd9"

#: Decoder buffer ceiling in bytes; the buffer is cleared once exceeded.
STREAM_BUFFER_LIMIT = 5_000_000


def clamp_unit(value: float) -> float:
    """Clamp *value* to the closed interval ``[-1.0, 1.0]``.

    NaN and infinities read as a released control (``0.0``).
    """
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))
