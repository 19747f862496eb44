"""
Shared handle to the 4-digit display.

Every writer in the process (the periodic updater, each HTTP request,
the sync coordinator) goes through one :class:`DeviceHandle`.  The handle
owns a single lock; each public operation takes it for the duration of
its bridge commands and nothing longer, so a clear-then-write pair can
never be split by another caller while slow work (such as waiting for a
time sync) happens outside the lock.

Use as a context manager for automatic port handling::

    with open_device("/dev/ttyUSB0") as display:
        display.init()
        display.write_message(Message.SYNC)
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from .clock import TimeDigits
from .constants import (
    DEFAULT_BAUD,
    DEFAULT_BRIGHTNESS,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    MAX_BRIGHTNESS,
    MIN_BRIGHTNESS,
)
from .encoding import Frame, Message, check_frame, encode_message, encode_time
from .exceptions import AlreadyInitializedError, DeviceNotReadyError
from .protocol import DisplayProtocol
from .transport import SerialTransport

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Result of an operation that may legitimately ignore its input."""

    APPLIED = "applied"
    IGNORED = "ignored"


class DeviceHandle:
    """Lock-guarded access to the display.

    Args:
        driver: The bridge protocol (anything with ``init``, ``set_brightness``,
            ``clear``, ``write_frame`` and ``close``).
        default_brightness: Level applied by :meth:`init`.
    """

    def __init__(
        self,
        driver: DisplayProtocol,
        default_brightness: int = DEFAULT_BRIGHTNESS,
    ) -> None:
        self._driver = driver
        self._default_brightness = default_brightness
        self._lock = threading.Lock()
        self._initialized = False
        self._brightness: Optional[int] = None
        self._last_frame: Optional[Frame] = None

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> DeviceHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying port (safe to call multiple times)."""
        self._driver.close()

    # -- State --------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def brightness(self) -> Optional[int]:
        """Last brightness level the bridge accepted."""
        return self._brightness

    @property
    def last_frame(self) -> Optional[Frame]:
        """Last frame written successfully."""
        return self._last_frame

    # -- Operations ---------------------------------------------------------

    def init(self) -> None:
        """Bring the display up: reset, default brightness, ``init`` message.

        The whole sequence runs under the lock, so no other caller can
        observe a half-initialised display.

        Raises:
            AlreadyInitializedError: If the display was already initialised.
            TransportError: If any bridge command fails.
        """
        with self._lock:
            if self._initialized:
                raise AlreadyInitializedError("Display already initialised")
            self._driver.init()
            self._driver.set_brightness(self._default_brightness)
            self._brightness = self._default_brightness
            self._write_locked(encode_message(Message.INIT))
            self._initialized = True
        logger.info("Display initialised (brightness %d)", self._default_brightness)

    def write(self, frame: Frame) -> None:
        """Clear the display and show *frame* as one uninterruptible step."""
        frame = check_frame(frame)
        with self._lock:
            self._require_ready()
            self._write_locked(frame)

    def write_message(self, message: Message) -> None:
        self.write(encode_message(message))

    def write_time(self, digits: TimeDigits) -> None:
        self.write(encode_time(digits))

    def set_brightness(self, level: int) -> Outcome:
        """Set the display intensity.

        Levels outside 1-7 (or non-integers) are accepted but ignored: the
        display is left untouched and :attr:`Outcome.IGNORED` is returned.
        """
        if isinstance(level, bool) or not isinstance(level, int):
            return Outcome.IGNORED
        if not MIN_BRIGHTNESS <= level <= MAX_BRIGHTNESS:
            return Outcome.IGNORED
        with self._lock:
            self._require_ready()
            self._driver.set_brightness(level)
            self._brightness = level
        logger.info("Brightness updated to level %d", level)
        return Outcome.APPLIED

    # -- Internal -----------------------------------------------------------

    def _require_ready(self) -> None:
        if not self._initialized:
            raise DeviceNotReadyError("Display not initialised — call init() first.")

    def _write_locked(self, frame: Frame) -> None:
        self._driver.clear()
        self._driver.write_frame(frame)
        self._last_frame = frame


# ---------------------------------------------------------------------------
# Convenience factory
# ---------------------------------------------------------------------------


def open_device(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUD,
    timeout: float = DEFAULT_TIMEOUT,
    default_brightness: int = DEFAULT_BRIGHTNESS,
) -> DeviceHandle:
    """Open the serial bridge on *port* and return an uninitialised handle.

    Raises:
        ConnectionError: If the port cannot be opened.
    """
    transport = SerialTransport(port, baudrate, timeout)
    transport.open()
    return DeviceHandle(DisplayProtocol(transport), default_brightness=default_brightness)
