"""Shared pytest fixtures for segclock tests."""

from __future__ import annotations

import threading
import time
from unittest.mock import patch

import pytest

from segclock.device import DeviceHandle
from segclock.exceptions import CommandError
from segclock.protocol import DisplayProtocol
from segclock.timesync import SyncStatus
from segclock.transport import SerialTransport


class FakeSerial:
    """Lightweight stand-in for ``serial.Serial``.

    Implements the subset of the pyserial API used by
    :class:`~segclock.transport.SerialTransport`:
    ``write``, ``read_until``, ``flush``, ``reset_input_buffer``, ``close``,
    and ``is_open``.

    By default every command gets an ``OK\\n`` reply.  Call
    :meth:`set_response` to stage a custom reply for the **next** command;
    after that command the default is automatically restored.
    """

    _DEFAULT = b"OK\n"

    def __init__(self) -> None:
        self.is_open: bool = True
        self.written: list[bytes] = []
        self._response: bytes = self._DEFAULT
        self._next: bytes | None = None

    # -- Helpers for tests --------------------------------------------------

    def set_response(self, text: str) -> None:
        """Stage a reply for the **next** command (write cycle)."""
        self._next = text.encode("ascii")

    @property
    def commands(self) -> list[str]:
        return [w.decode("ascii").rstrip("\n") for w in self.written]

    # -- pyserial interface -------------------------------------------------

    def write(self, data: bytes) -> int:
        self.written.append(data)
        if self._next is not None:
            self._response = self._next
            self._next = None
        else:
            self._response = self._DEFAULT
        return len(data)

    def read_until(self, expected: bytes = b"\n", size: int | None = None) -> bytes:
        """Return everything up to and including *expected*."""
        idx = self._response.find(expected)
        if idx == -1:
            # Terminator not found — return everything (mimics timeout)
            data = self._response
            self._response = b""
        else:
            end = idx + len(expected)
            data = self._response[:end]
            self._response = self._response[end:]
        return data

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        pass  # no-op — we don't want to discard the staged response

    def close(self) -> None:
        self.is_open = False


class FakeDisplay:
    """In-memory display collaborator with the ``DisplayProtocol`` interface.

    Records every call in :attr:`calls` and flags any clear/write pair that
    another thread managed to split in :attr:`violations`.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[tuple] = []
        self.shown: bytes | None = None
        self.brightness: int | None = None
        self.closed = False
        self.violations: list[str] = []
        self.fail_next: dict[str, int] = {}
        self._pending: int | None = None
        self._guard = threading.Lock()

    def _record(self, *call) -> None:
        with self._guard:
            self.calls.append(call)
        remaining = self.fail_next.get(call[0], 0)
        if remaining:
            self.fail_next[call[0]] = remaining - 1
            raise CommandError(f"Bridge error for '{call[0]}': simulated")

    @property
    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def init(self) -> None:
        time.sleep(self.delay)
        self._record("init")

    def set_brightness(self, level: int) -> None:
        self._record("set_brightness", level)
        self.brightness = level

    def clear(self) -> None:
        self._record("clear")
        me = threading.get_ident()
        if self._pending is not None and self._pending != me:
            self.violations.append("clear while another write was pending")
        self._pending = me
        self.shown = bytes(4)
        time.sleep(self.delay)

    def write_frame(self, frame: bytes) -> None:
        if self._pending != threading.get_ident():
            self.violations.append("write_frame without own clear")
        self._pending = None
        self._record("write_frame", bytes(frame))
        self.shown = bytes(frame)

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Wall clock frozen at a settable time."""

    def __init__(self, hour: int = 9, minute: int = 5, timezone_name: str = "UTC") -> None:
        self.hour = hour
        self.minute = minute
        self.timezone_name = timezone_name
        self.reads = 0

    def now(self) -> tuple[int, int]:
        self.reads += 1
        return self.hour, self.minute


class FakeSync:
    """Time-sync service that completes after a number of polls.

    Args:
        complete_after: ``IN_PROGRESS`` replies before ``COMPLETED``;
            ``None`` never completes.
        device: When given, the frame shown and the lock state are recorded
            on every poll.
    """

    def __init__(self, complete_after: int | None = 2, device: DeviceHandle | None = None) -> None:
        self.complete_after = complete_after
        self.device = device
        self.restarts = 0
        self.polls = 0
        self.frames_seen: list[bytes | None] = []
        self.lock_held: list[bool] = []

    def sync_restart(self) -> None:
        self.restarts += 1
        self.polls = 0

    def sync_status(self) -> SyncStatus:
        if self.device is not None:
            self.frames_seen.append(self.device.last_frame)
            self.lock_held.append(self.device._lock.locked())  # noqa: SLF001
        self.polls += 1
        if self.complete_after is not None and self.polls > self.complete_after:
            return SyncStatus.COMPLETED
        return SyncStatus.IN_PROGRESS


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_serial() -> FakeSerial:
    """Return a fresh ``FakeSerial`` instance."""
    return FakeSerial()


@pytest.fixture()
def transport(fake_serial: FakeSerial) -> SerialTransport:
    """Return a ``SerialTransport`` wired to a fake serial port."""
    with patch("segclock.transport.serial.Serial", return_value=fake_serial):
        tx = SerialTransport("/dev/fake")
        tx.open()
        return tx


@pytest.fixture()
def protocol(transport: SerialTransport) -> DisplayProtocol:
    """Return a ``DisplayProtocol`` wired to a fake transport."""
    return DisplayProtocol(transport)


@pytest.fixture()
def serial_device(protocol: DisplayProtocol, fake_serial: FakeSerial) -> DeviceHandle:
    """Return an initialised ``DeviceHandle`` over the fake serial port."""
    handle = DeviceHandle(protocol)
    handle.init()
    # Reset so tests don't see the init sequence
    fake_serial.written.clear()
    return handle


@pytest.fixture()
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture()
def raw_device(display: FakeDisplay) -> DeviceHandle:
    """Return a ``DeviceHandle`` over a fake display, not yet initialised."""
    return DeviceHandle(display)


@pytest.fixture()
def device(raw_device: DeviceHandle, display: FakeDisplay) -> DeviceHandle:
    """Return an initialised ``DeviceHandle`` over a fake display."""
    raw_device.init()
    display.calls.clear()
    return raw_device


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
