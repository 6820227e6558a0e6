"""Client configuration for pydeepracer."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pydeepracer._constants import MAX_SPEED, STREAM_BUFFER_LIMIT
from pydeepracer.exceptions import DeepRacerConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class DeepRacerConfig:
    """Client configuration.

    Parameters
    ----------
    host : str
        Device address (IP or hostname, optionally with ``:port``).
    password : str
        Password printed on the bottom of the car / set in its console.
    scheme : str
        URL scheme.  The device only serves HTTPS; ``"http"`` is useful
        against local test servers.
    verify_ssl : bool
        Verify the device's TLS certificate.  The device ships a
        self-signed certificate, so verification is off by default.
    request_timeout : float
        Total timeout in seconds for login, battery and mode/start/stop
        requests.
    drive_timeout : float
        Total timeout in seconds for a single drive tick request.
    stream_read_timeout : float
        Seconds to wait for the next chunk of the video stream.
    tick_interval : float
        Period of the drive loop in seconds (20 Hz by default).
    settle_delay : float
        Pause after ``start`` before the first drive tick.
    max_speed : float
        Speed cap sent with every drive command.
    battery_poll_interval : float
        Seconds between battery polls when polling is enabled.
    stream_width, stream_height : int
        Requested video resolution.
    stream_buffer_limit : int
        Frame decoder buffer ceiling in bytes.
    """

    host: str
    password: str
    scheme: str = "https"
    verify_ssl: bool = False
    request_timeout: float = 10.0
    drive_timeout: float = 1.0
    stream_read_timeout: float = 10.0
    tick_interval: float = 0.05
    settle_delay: float = 0.1
    max_speed: float = MAX_SPEED
    battery_poll_interval: float = 5.0
    stream_width: int = 480
    stream_height: int = 360
    stream_buffer_limit: int = STREAM_BUFFER_LIMIT

    def __post_init__(self) -> None:
        if self.scheme not in ("https", "http"):
            raise DeepRacerConfigError(f"scheme must be 'https' or 'http', got {self.scheme!r}")
        if self.tick_interval <= 0:
            raise DeepRacerConfigError("tick_interval must be positive")
        if self.stream_buffer_limit <= 0:
            raise DeepRacerConfigError("stream_buffer_limit must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> DeepRacerConfig:
        """Create configuration from environment variables.

        Reads ``DEEPRACER_HOST``, ``DEEPRACER_PASSWORD`` and the optional
        ``DEEPRACER_*`` variables listed below.  Explicit keyword arguments
        override environment values.

        Raises
        ------
        DeepRacerConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "DEEPRACER_HOST": "host",
            "DEEPRACER_PASSWORD": "password",
            "DEEPRACER_SCHEME": "scheme",
        }
        _ENV_FLOAT_MAP = {
            "DEEPRACER_REQUEST_TIMEOUT": "request_timeout",
            "DEEPRACER_DRIVE_TIMEOUT": "drive_timeout",
            "DEEPRACER_STREAM_READ_TIMEOUT": "stream_read_timeout",
            "DEEPRACER_TICK_INTERVAL": "tick_interval",
            "DEEPRACER_SETTLE_DELAY": "settle_delay",
            "DEEPRACER_MAX_SPEED": "max_speed",
            "DEEPRACER_BATTERY_POLL_INTERVAL": "battery_poll_interval",
        }
        _ENV_INT_MAP = {
            "DEEPRACER_STREAM_WIDTH": "stream_width",
            "DEEPRACER_STREAM_HEIGHT": "stream_height",
            "DEEPRACER_STREAM_BUFFER_LIMIT": "stream_buffer_limit",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for mapping, parse in ((_ENV_FLOAT_MAP, float), (_ENV_INT_MAP, int)):
            for env_key, field_name in mapping.items():
                val = env.get(env_key)
                if val is None or field_name in overrides:
                    continue
                try:
                    config_kwargs[field_name] = parse(val)
                except ValueError as exc:
                    raise DeepRacerConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        if "verify_ssl" not in overrides:
            config_kwargs["verify_ssl"] = _env_bool(env.get("DEEPRACER_VERIFY_SSL"), False)

        config_kwargs.update(overrides)

        missing = [name for name in ("host", "password") if not config_kwargs.get(name)]
        if missing:
            raise DeepRacerConfigError(f"Missing configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
