"""Periodic display refresh."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .clock import SystemClock, TimeDigits, current_digits
from .constants import TICK_INTERVAL_S
from .device import DeviceHandle
from .exceptions import SegClockError

logger = logging.getLogger(__name__)


class PeriodicUpdater:
    """Writes the current time to the display every *interval* seconds.

    A failed tick is logged and the display keeps its last frame; the next
    tick tries again.  With ``fail_fast=True`` the error is re-raised and
    the loop stops instead.
    """

    def __init__(
        self,
        device: DeviceHandle,
        clock: SystemClock,
        interval: float = TICK_INTERVAL_S,
        fail_fast: bool = False,
    ) -> None:
        self._device = device
        self._clock = clock
        self.interval = interval
        self.fail_fast = fail_fast
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> TimeDigits:
        """Read the clock once and show it."""
        digits = current_digits(self._clock)
        self._device.write_time(digits)
        logger.debug("Display updated to %s", digits.as_text())
        return digits

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Tick now, then every ``interval`` until *stop_event* is set."""
        stop_event = stop_event or self._stop
        while not stop_event.is_set():
            try:
                self.tick()
            except SegClockError as exc:
                if self.fail_fast:
                    raise
                logger.error("Failed to update display time: %s", exc)
            stop_event.wait(self.interval)

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="segclock-updater", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
