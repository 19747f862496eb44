"""
Service assembly and startup sequence.

Startup order matters and every step is fatal on failure:

1. initialise the display (shows ``init``),
2. wait for the network,
3. wait for the initial time sync,
4. start the HTTP server,
5. run the periodic updater until asked to stop.

Once running, failures are isolated: a bad tick or request is logged and
the service carries on.
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Optional

from .clock import SystemClock
from .config import ClockConfig
from .device import DeviceHandle, open_device
from .encoding import make_frame
from .exceptions import SegClockError
from .handlers import RequestHandlers
from .network import NetworkProbe, wait_for_network
from .server import ClockServer
from .timesync import SyncCoordinator, TimedatectlSync
from .updater import PeriodicUpdater

logger = logging.getLogger(__name__)


class ClockApp:
    """Wires the display, clock, sync service and HTTP surface together."""

    def __init__(
        self,
        config: ClockConfig,
        device: DeviceHandle,
        clock: SystemClock,
        sync: TimedatectlSync,
        probe: Optional[NetworkProbe] = None,
    ) -> None:
        self.config = config
        self.device = device
        self.clock = clock
        self.probe = probe
        self.coordinator = SyncCoordinator(
            sync,
            device,
            clock,
            poll_interval=config.time.sync_poll_interval,
            timeout=config.time.sync_timeout,
        )
        self.handlers = RequestHandlers(device, self.coordinator, clock, config.network.name)
        self.updater = PeriodicUpdater(device, clock, interval=config.time.tick_interval)
        self.server: Optional[ClockServer] = None

    @classmethod
    def from_config(cls, config: ClockConfig) -> ClockApp:
        """Open the serial bridge and build the real collaborators.

        Raises:
            ConnectionError: If the display port cannot be opened.
        """
        device = open_device(
            config.display.port,
            config.display.baudrate,
            config.display.timeout,
            default_brightness=config.display.brightness,
        )
        probe = NetworkProbe(config.network.probe_host, config.network.probe_port)
        return cls(config, device, SystemClock(config.time.timezone), TimedatectlSync(), probe)

    # -- Lifecycle ----------------------------------------------------------

    def start(self, skip_sync: bool = False) -> None:
        """Run the fatal startup steps and start the HTTP server.

        Raises:
            SegClockError: If any startup step fails.
        """
        self.device.init()

        if self.probe is not None:
            wait_for_network(self.probe, timeout=self.config.network.connect_timeout)

        if skip_sync:
            logger.warning("Skipping initial time sync")
        else:
            logger.info("Waiting for initial time sync")
            self.coordinator.wait_until_synced()
            logger.info("Initial time sync completed")

        self.server = ClockServer(self.handlers, self.config.http.host, self.config.http.port)
        self.server.start()

    def run(self, stop_event: threading.Event) -> None:
        """Run the periodic updater on the calling thread until *stop_event* is set."""
        self.updater.run(stop_event)

    def shutdown(self) -> None:
        """Stop serving, blank the display best-effort and release the port."""
        if self.server is not None:
            self.server.stop()
            self.server = None
        if self.device.is_initialized:
            with suppress(SegClockError):
                self.device.write(make_frame([0, 0, 0, 0]))
        self.device.close()
        logger.info("segclock stopped")
