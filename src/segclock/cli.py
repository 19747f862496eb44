"""
segclock command-line entry point.

Usage:
    segclock                                  # default config/clock.yaml
    segclock --config /etc/segclock.yaml
    segclock --port /dev/ttyACM0 --http-port 8000
    segclock --skip-sync --log-level DEBUG
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import signal
import sys
import threading
from pathlib import Path

from .app import ClockApp
from .config import ClockConfig, load_config
from .exceptions import SegClockError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config") / "clock.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="segclock",
        description="Network clock on a 4-digit 7-segment display with an HTTP control page.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to YAML config file (default: {DEFAULT_CONFIG}); built-in defaults if missing",
    )
    parser.add_argument("--port", help="Serial port of the display bridge (overrides config)")
    parser.add_argument("--http-port", type=int, help="HTTP port (overrides config)")
    parser.add_argument(
        "--skip-sync",
        action="store_true",
        help="Do not wait for the initial time sync at startup",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ClockConfig:
    """Load the config file (if present) and apply command-line overrides."""
    if args.config.exists():
        config = load_config(args.config)
    else:
        logger.warning("Config file %s not found; using defaults", args.config)
        config = ClockConfig()

    if args.port:
        config = dataclasses.replace(
            config, display=dataclasses.replace(config.display, port=args.port)
        )
    if args.http_port is not None:
        config = dataclasses.replace(
            config, http=dataclasses.replace(config.http, port=args.http_port)
        )
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
        app = ClockApp.from_config(config)
    except (FileNotFoundError, SegClockError) as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    # Ctrl-C stays a KeyboardInterrupt until startup is done, so it can
    # break out of the network and initial-sync waits.
    try:
        app.start(skip_sync=args.skip_sync)
    except SegClockError as exc:
        logger.error("Startup failed: %s", exc)
        app.shutdown()
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted during startup")
        app.shutdown()
        return 130

    stop = threading.Event()

    def _request_stop(signum, frame):
        logger.info("Received signal %d, shutting down", signum)
        stop.set()

    previous = {sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        app.run(stop)
    finally:
        for sig, handler in previous.items():
            if handler is not None:
                signal.signal(sig, handler)
        app.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
