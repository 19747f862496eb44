"""
Display bridge protocol: command building, ack checking, and reply parsing.

This module sits between the transport (raw serial I/O) and the device
handle (the shared, lock-guarded API).  It knows how to:

* build properly formatted bridge commands,
* check replies for ``OK`` / ``ERR``,
* parse the ``INFO`` reply.

It does **not** own the serial port (that belongs to
:class:`~segclock.transport.SerialTransport`) and it does **not** serialise
callers; :class:`~segclock.device.DeviceHandle` does that.

Wire format::

    INIT                    -> OK
    BRIGHT <1-7>            -> OK
    CLEAR                   -> OK
    RAW <hh> <hh> <hh> <hh> -> OK
    INFO                    -> bridge=<name> fw=<version>
    (any)                   -> ERR <reason>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import MAX_BRIGHTNESS, MIN_BRIGHTNESS
from .encoding import Frame, check_frame
from .exceptions import CommandError, ValidationError
from .transport import SerialTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BridgeInfo:
    """Identification returned by the ``INFO`` command."""

    name: str
    firmware_version: str

    @classmethod
    def from_response(cls, response: str) -> BridgeInfo:
        """Parse a raw ``INFO`` reply such as ``bridge=tm1637-uart fw=1.2``."""
        fields = dict(part.split("=", 1) for part in response.split() if "=" in part)
        if "bridge" not in fields:
            logger.warning("Failed to fully parse INFO response: %r", response)
        return cls(fields.get("bridge", "Unknown"), fields.get("fw", "Unknown"))


# ---------------------------------------------------------------------------
# Ack checking
# ---------------------------------------------------------------------------


def _check_ack(response: str, cmd: str) -> str:
    """Raise if *response* is an ``ERR`` reply, otherwise return it."""
    if response.startswith("ERR"):
        reason = response[3:].strip() or "unspecified"
        raise CommandError(f"Bridge error for '{cmd}': {reason}")
    return response


def _expect_ack(response: str, cmd: str) -> None:
    """Assert that *response* is the ``OK`` success marker."""
    _check_ack(response, cmd)
    if response != "OK":
        raise CommandError(f"Expected 'OK' acknowledgement for '{cmd}', got: {response!r}")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class DisplayProtocol:
    """Builds bridge commands, sends them via a transport, and checks replies.

    Args:
        transport: An open :class:`~segclock.transport.SerialTransport`.
    """

    def __init__(self, transport: SerialTransport) -> None:
        self._tx = transport

    @property
    def transport(self) -> SerialTransport:
        return self._tx

    def close(self) -> None:
        """Close the underlying transport."""
        self._tx.close()

    def _cmd(self, cmd: str) -> str:
        response = self._tx.send(cmd)
        return _check_ack(response, cmd)

    def _cmd_ack(self, cmd: str) -> None:
        response = self._tx.send(cmd)
        _expect_ack(response, cmd)

    # -- Commands -----------------------------------------------------------

    def info(self) -> BridgeInfo:
        """Query the bridge name and firmware version."""
        return BridgeInfo.from_response(self._cmd("INFO"))

    def init(self) -> None:
        """Reset the display controller on the bridge."""
        self._cmd_ack("INIT")

    def set_brightness(self, level: int) -> None:
        """Set the display intensity (1-7)."""
        if not MIN_BRIGHTNESS <= level <= MAX_BRIGHTNESS:
            raise ValidationError(
                f"Brightness must be {MIN_BRIGHTNESS}-{MAX_BRIGHTNESS}, got {level}"
            )
        self._cmd_ack(f"BRIGHT {level}")

    def clear(self) -> None:
        """Blank all four positions."""
        self._cmd_ack("CLEAR")

    def write_frame(self, frame: Frame) -> None:
        """Write four raw segment bytes starting at position 0."""
        frame = check_frame(frame)
        self._cmd_ack("RAW " + " ".join(f"{b:02X}" for b in frame))
