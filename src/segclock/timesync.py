"""
Network time synchronisation.

:class:`TimedatectlSync` talks to systemd-timesyncd; :class:`SyncCoordinator`
drives a sync from start to finish and keeps the display informed::

    coordinator = SyncCoordinator(TimedatectlSync(), display, clock)
    coordinator.run_sync()   # shows "sync", waits, then shows the time

The wait is a plain poll of the sync service.  It never holds the display
lock, so the periodic updater and other requests keep working while a sync
is pending.
"""

from __future__ import annotations

import logging
import subprocess
import time
from enum import Enum
from typing import Optional

from .clock import SystemClock, current_digits
from .constants import SYNC_POLL_INTERVAL_S, SYNC_TIMEOUT_S
from .device import DeviceHandle
from .encoding import Message
from .exceptions import NetworkError, SyncTimeoutError

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """State of the time-sync service as seen by one poll."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# systemd-timesyncd collaborator
# ---------------------------------------------------------------------------


class TimedatectlSync:
    """Time-sync service backed by ``systemd-timesyncd``.

    Args:
        service: Unit restarted by :meth:`sync_restart`.
        command_timeout: Upper bound for each ``systemctl``/``timedatectl`` call.
    """

    def __init__(self, service: str = "systemd-timesyncd", command_timeout: float = 5.0) -> None:
        self.service = service
        self.command_timeout = command_timeout

    def sync_restart(self) -> None:
        """Re-trigger acquisition; safe while a previous sync is still pending."""
        self._run(["systemctl", "restart", self.service])

    def sync_status(self) -> SyncStatus:
        output = self._run(["timedatectl", "show", "--property=NTPSynchronized", "--value"])
        if output.strip() == "yes":
            return SyncStatus.COMPLETED
        return SyncStatus.IN_PROGRESS

    def _run(self, args: list[str]) -> str:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
                check=True,
            )
        except FileNotFoundError as exc:
            raise NetworkError(f"'{args[0]}' is not available on this system") from exc
        except subprocess.TimeoutExpired as exc:
            raise NetworkError(f"'{' '.join(args)}' timed out after {self.command_timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise NetworkError(f"'{' '.join(args)}' failed: {detail}") from exc
        return result.stdout


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class SyncCoordinator:
    """Runs a time sync and keeps the display in step with it.

    Args:
        sync: The time-sync service (``sync_restart()`` / ``sync_status()``).
        device: Shared display handle.
        clock: Wall clock used for the time shown after completion.
        poll_interval: Seconds between status checks.
        timeout: Seconds to wait for completion; ``None`` waits forever.
    """

    def __init__(
        self,
        sync: TimedatectlSync,
        device: DeviceHandle,
        clock: SystemClock,
        poll_interval: float = SYNC_POLL_INTERVAL_S,
        timeout: Optional[float] = SYNC_TIMEOUT_S,
    ) -> None:
        self._sync = sync
        self._device = device
        self._clock = clock
        self.poll_interval = poll_interval
        self.timeout = timeout

    def run_sync(self) -> float:
        """Restart the sync, show ``sync``, wait, then show the fresh time.

        Returns:
            Seconds spent waiting for the sync service.

        Raises:
            SyncTimeoutError: If the sync does not complete within ``timeout``.
                The display keeps showing ``sync``.
            NetworkError: If the sync service cannot be queried.
            TransportError: If a display write fails.
        """
        self._sync.sync_restart()
        logger.info("Synchronizing with time server")
        self._device.write_message(Message.SYNC)

        elapsed = self.wait_until_synced()

        self._device.write_time(current_digits(self._clock))
        logger.info("Time sync completed in %.1fs", elapsed)
        return elapsed

    def wait_until_synced(self) -> float:
        """Poll the sync service until it reports completion.

        Holds no lock.  Used directly at startup, where there is nothing to
        restart and the display already shows ``init``.
        """
        start = time.monotonic()
        while self._sync.sync_status() is not SyncStatus.COMPLETED:
            elapsed = time.monotonic() - start
            if self.timeout is not None and elapsed >= self.timeout:
                raise SyncTimeoutError(f"Time sync did not complete within {self.timeout:g}s")
            time.sleep(self.poll_interval)
        return time.monotonic() - start
