"""
Configuration loading for the segclock service.

Settings live in a YAML file with four sections; every key is optional::

    from segclock.config import load_config

    config = load_config("config/clock.yaml")
    print(config.display.port, config.time.timezone)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .constants import (
    DEFAULT_BAUD,
    DEFAULT_BRIGHTNESS,
    DEFAULT_HTTP_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_PORT,
    DEFAULT_PROBE_HOST,
    DEFAULT_PROBE_PORT,
    DEFAULT_TIMEOUT,
    DEFAULT_TIMEZONE,
    MAX_BRIGHTNESS,
    MIN_BRIGHTNESS,
    NETWORK_CONNECT_TIMEOUT_S,
    SYNC_POLL_INTERVAL_S,
    SYNC_TIMEOUT_S,
    TICK_INTERVAL_S,
)
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DisplayConfig:
    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUD
    timeout: float = DEFAULT_TIMEOUT
    brightness: int = DEFAULT_BRIGHTNESS


@dataclass(frozen=True)
class NetworkConfig:
    name: str = ""
    probe_host: str = DEFAULT_PROBE_HOST
    probe_port: int = DEFAULT_PROBE_PORT
    connect_timeout: float = NETWORK_CONNECT_TIMEOUT_S


@dataclass(frozen=True)
class TimeConfig:
    timezone: str = DEFAULT_TIMEZONE
    tick_interval: float = TICK_INTERVAL_S
    sync_poll_interval: float = SYNC_POLL_INTERVAL_S
    sync_timeout: Optional[float] = SYNC_TIMEOUT_S


@dataclass(frozen=True)
class HttpConfig:
    host: str = DEFAULT_HTTP_HOST
    port: int = DEFAULT_HTTP_PORT


@dataclass(frozen=True)
class ClockConfig:
    """Top-level configuration loaded from a YAML file."""

    display: DisplayConfig = field(default_factory=DisplayConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    time: TimeConfig = field(default_factory=TimeConfig)
    http: HttpConfig = field(default_factory=HttpConfig)


# ---------------------------------------------------------------------------
# Config loading & validation
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> ClockConfig:
    """Load and validate a clock configuration from a YAML file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValidationError: If the config is malformed or contains invalid values.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    config = parse_config(raw)
    logger.debug("Loaded config from %s: %r", path, config)
    return config


def parse_config(raw: dict[str, Any]) -> ClockConfig:
    """Validate an already-parsed mapping and build a :class:`ClockConfig`."""
    display = _section(raw, "display")
    network = _section(raw, "network")
    time_ = _section(raw, "time")
    http = _section(raw, "http")

    brightness = _int(display, "display.brightness", DEFAULT_BRIGHTNESS)
    if not MIN_BRIGHTNESS <= brightness <= MAX_BRIGHTNESS:
        raise ValidationError(
            f"'display.brightness' must be {MIN_BRIGHTNESS}-{MAX_BRIGHTNESS}, got {brightness}"
        )

    timezone = _str(time_, "time.timezone", DEFAULT_TIMEZONE)
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"'time.timezone' is not a known timezone: {timezone!r}") from exc

    sync_timeout: Optional[float]
    if "sync_timeout" in time_ and time_["sync_timeout"] is None:
        sync_timeout = None
    else:
        sync_timeout = _positive_float(time_, "time.sync_timeout", SYNC_TIMEOUT_S)

    http_port = _int(http, "http.port", DEFAULT_HTTP_PORT)
    if not 0 <= http_port <= 65535:
        raise ValidationError(f"'http.port' must be 0-65535, got {http_port}")

    return ClockConfig(
        display=DisplayConfig(
            port=_str(display, "display.port", DEFAULT_PORT),
            baudrate=_int(display, "display.baudrate", DEFAULT_BAUD),
            timeout=_positive_float(display, "display.timeout", DEFAULT_TIMEOUT),
            brightness=brightness,
        ),
        network=NetworkConfig(
            name=_str(network, "network.name", "", allow_empty=True),
            probe_host=_str(network, "network.probe_host", DEFAULT_PROBE_HOST),
            probe_port=_int(network, "network.probe_port", DEFAULT_PROBE_PORT),
            connect_timeout=_positive_float(
                network, "network.connect_timeout", NETWORK_CONNECT_TIMEOUT_S
            ),
        ),
        time=TimeConfig(
            timezone=timezone,
            tick_interval=_positive_float(time_, "time.tick_interval", TICK_INTERVAL_S),
            sync_poll_interval=_positive_float(
                time_, "time.sync_poll_interval", SYNC_POLL_INTERVAL_S
            ),
            sync_timeout=sync_timeout,
        ),
        http=HttpConfig(
            host=_str(http, "http.host", DEFAULT_HTTP_HOST),
            port=http_port,
        ),
    )


def _section(raw: dict, name: str) -> dict:
    data = raw.get(name, {})
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"'{name}' must be a mapping, got {type(data).__name__}")
    return data


def _key(dotted: str) -> str:
    return dotted.rsplit(".", 1)[-1]


def _str(data: dict, dotted: str, default: str, allow_empty: bool = False) -> str:
    val = data.get(_key(dotted), default)
    if not isinstance(val, str) or (not val and not allow_empty):
        raise ValidationError(f"'{dotted}' must be a non-empty string, got {val!r}")
    return val


def _int(data: dict, dotted: str, default: int) -> int:
    val = data.get(_key(dotted), default)
    if isinstance(val, bool) or not isinstance(val, int):
        raise ValidationError(f"'{dotted}' must be an integer, got {val!r}")
    return val


def _positive_float(data: dict, dotted: str, default: float) -> float:
    val = data.get(_key(dotted), default)
    if isinstance(val, bool) or not isinstance(val, (int, float)) or val <= 0:
        raise ValidationError(f"'{dotted}' must be a positive number, got {val!r}")
    return float(val)
