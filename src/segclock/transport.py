"""
Serial transport layer for the display bridge.

The TM1637 display is driven by a small bridge board that does the
clock/data bit-banging and listens for text commands on a serial port.
This module handles the physical serial connection, line framing, and
buffer hygiene.  It knows nothing about what commands mean; that's
:mod:`protocol`'s job.

Typical usage (via :class:`~segclock.device.DeviceHandle`)::

    transport = SerialTransport("/dev/ttyUSB0")
    transport.open()
    response = transport.send("CLEAR")
    transport.close()
"""

from __future__ import annotations

import logging

import serial

from .constants import DEFAULT_BAUD, DEFAULT_PORT, DEFAULT_TIMEOUT
from .exceptions import ConnectionError, TimeoutError

logger = logging.getLogger(__name__)

# Framing: one command per line, one reply per line
_CMD_TERMINATOR = b"\n"
_RESP_TERMINATOR = b"\n"


class SerialTransport:
    """Manages a serial connection to the display bridge.

    Args:
        port: Serial port path (e.g. ``/dev/ttyUSB0``).
        baudrate: Baud rate (default 115200).
        timeout: Per-read timeout in seconds.  Also serves as the upper
            bound on how long :meth:`send` will wait for a reply.
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._ser: serial.Serial | None = None

    # -- Lifecycle ----------------------------------------------------------

    def open(self) -> None:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        logger.info("Opening serial port %s at %d baud", self.port, self.baudrate)
        try:
            self._ser = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self.timeout,
            )
        except serial.SerialException as exc:
            raise ConnectionError(f"Cannot open {self.port}: {exc}") from exc

    def close(self) -> None:
        """Close the serial port (safe to call multiple times)."""
        if self._ser and self._ser.is_open:
            self._ser.close()
            logger.info("Serial port %s closed", self.port)

    @property
    def is_open(self) -> bool:
        """Return ``True`` if the serial port is currently open."""
        return self._ser is not None and self._ser.is_open

    # -- I/O ----------------------------------------------------------------

    def send(self, cmd: str) -> str:
        """Send *cmd* and return the bridge's decoded reply.

        Steps:
            1. Flush any stale bytes from the input buffer.
            2. Write the command with ``LF`` termination.
            3. Flush the output buffer to ensure bytes leave the process.
            4. Read until ``LF`` or the serial timeout expires.
            5. Decode and strip the reply.

        Raises:
            ConnectionError: If the port is not open or the write fails.
            TimeoutError: If no reply is received.
        """
        ser = self._require_open()
        logger.debug("TX: %s", cmd)

        try:
            ser.reset_input_buffer()
            ser.write(cmd.encode("ascii") + _CMD_TERMINATOR)
            ser.flush()
            raw = ser.read_until(_RESP_TERMINATOR)
        except serial.SerialException as exc:
            raise ConnectionError(f"Serial I/O failed on {self.port}: {exc}") from exc

        response = raw.decode("ascii", errors="replace").strip()
        logger.debug("RX: %s", response)

        if not response:
            raise TimeoutError(f"No response from display bridge for '{cmd}'")

        return response

    # -- Internal -----------------------------------------------------------

    def _require_open(self) -> serial.Serial:
        """Return the open serial port or raise."""
        if not self.is_open:
            raise ConnectionError("Serial port not open — call open() first.")
        assert self._ser is not None  # for type-checker
        return self._ser
