"""
Tests for the control surface and service assembly.

Covers:
* Request handlers (status, set_digits, set_brightness, sync, index)
* HTTP routing and error replies
* Startup order and shutdown of :class:`ClockApp`
* Command-line config resolution
"""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from urllib.error import HTTPError
from urllib.request import urlopen

import pytest

from segclock import (
    DeviceNotReadyError,
    Message,
    NetworkError,
    Outcome,
    SyncCoordinator,
    encode_message,
    encode_raw_token,
    encode_time,
)
from segclock.app import ClockApp
from segclock.cli import build_parser, main, resolve_config
from segclock.config import parse_config
from segclock.handlers import RequestHandlers
from segclock.server import ClockServer

from .conftest import FakeSync

# ══════════════════════════════════════════════════════════════════════════
#  Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def sync() -> FakeSync:
    return FakeSync(complete_after=1)


@pytest.fixture()
def handlers(device, clock, sync) -> RequestHandlers:
    coordinator = SyncCoordinator(sync, device, clock, poll_interval=0, timeout=1.0)
    return RequestHandlers(device, coordinator, clock, network_name="home-wifi")


@pytest.fixture()
def server(handlers):
    srv = ClockServer(handlers, host="127.0.0.1", port=0)
    srv.start()
    yield srv
    srv.stop()


def get(server: ClockServer, target: str) -> tuple[int, str]:
    host, port = server.address
    with urlopen(f"http://{host}:{port}{target}", timeout=5) as resp:
        return resp.status, resp.read().decode("utf-8")


# ══════════════════════════════════════════════════════════════════════════
#  Handlers
# ══════════════════════════════════════════════════════════════════════════


class TestStatusHandler:
    def test_reports_network_timezone_and_time(self, handlers):
        body = handlers.status("/get_status").body
        assert "home-wifi" in body
        assert "UTC" in body
        assert "09:05" in body

    def test_does_not_touch_device(self, handlers, display):
        handlers.status("/get_status")
        assert display.calls == []


class TestSetDigitsHandler:
    def test_writes_token(self, handlers, display):
        result = handlers.set_digits("/set_digits?1234")
        assert result.body == "Digits inserted!"
        assert result.outcome is Outcome.APPLIED
        assert display.shown == encode_raw_token(b"1234")

    def test_token_ends_at_ampersand(self, handlers, display):
        handlers.set_digits("/set_digits?12&x=9")
        assert display.shown == encode_raw_token(b"12")

    def test_token_is_not_percent_decoded(self, handlers, display):
        handlers.set_digits("/set_digits?%41")
        assert display.shown == encode_raw_token(b"%41")

    @pytest.mark.parametrize("target", ["/set_digits", "/set_digits?", "/set_digits?&a=1"])
    def test_missing_token_ignored(self, handlers, display, target):
        result = handlers.set_digits(target)
        assert result.body == "Digits inserted!"
        assert result.outcome is Outcome.IGNORED
        assert display.calls == []


class TestSetBrightnessHandler:
    @pytest.mark.parametrize("level", [1, 7])
    def test_in_range_applied(self, handlers, display, level):
        result = handlers.set_brightness(f"/set_brightness?{level}")
        assert result.body == "Brightness Updated!"
        assert result.outcome is Outcome.APPLIED
        assert display.brightness == level

    def test_leading_plus_sign_applied(self, handlers, display):
        result = handlers.set_brightness("/set_brightness?+5")
        assert result.outcome is Outcome.APPLIED
        assert display.calls[-1] == ("set_brightness", 5)

    @pytest.mark.parametrize(
        "target",
        [
            "/set_brightness?0",
            "/set_brightness?8",
            "/set_brightness?300",
            "/set_brightness?-1",
            "/set_brightness?+",
            "/set_brightness?++5",
            "/set_brightness?+-5",
            "/set_brightness?abc",
            "/set_brightness?5&x",
            "/set_brightness?",
            "/set_brightness",
        ],
    )
    def test_invalid_accepted_but_ignored(self, handlers, display, target):
        result = handlers.set_brightness(target)
        assert result.body == "Brightness Updated!"
        assert result.outcome is Outcome.IGNORED
        assert display.calls == []
        assert display.brightness == 5


class TestSyncHandler:
    def test_returns_after_completion(self, handlers, display, sync):
        result = handlers.sync("/sync_time")
        assert result.body == "Time synced successfully!"
        assert sync.restarts == 1
        assert display.shown == encode_time([0, 9, 0, 5])


class TestIndexHandler:
    def test_html(self, handlers):
        result = handlers.index("/")
        assert result.content_type.startswith("text/html")
        assert "/sync_time" in result.body


# ══════════════════════════════════════════════════════════════════════════
#  HTTP server
# ══════════════════════════════════════════════════════════════════════════


class TestServer:
    def test_status(self, server):
        status, body = get(server, "/get_status")
        assert status == 200
        assert "09:05" in body

    def test_set_digits(self, server, display):
        status, body = get(server, "/set_digits?42")
        assert (status, body) == (200, "Digits inserted!")
        assert display.shown == encode_raw_token(b"42")

    def test_set_brightness_ignored_still_200(self, server, display):
        status, body = get(server, "/set_brightness?9")
        assert (status, body) == (200, "Brightness Updated!")
        assert display.brightness == 5

    def test_sync(self, server):
        assert get(server, "/sync_time") == (200, "Time synced successfully!")

    def test_unknown_path_404(self, server):
        with pytest.raises(HTTPError) as exc_info:
            get(server, "/nope")
        assert exc_info.value.code == 404

    def test_device_error_500_and_server_survives(self, server, display):
        display.fail_next["write_frame"] = 1
        with pytest.raises(HTTPError) as exc_info:
            get(server, "/set_digits?1")
        assert exc_info.value.code == 500
        assert get(server, "/set_digits?2")[0] == 200

    def test_sync_timeout_504(self, device, display, clock):
        coordinator = SyncCoordinator(FakeSync(None), device, clock, poll_interval=0.01, timeout=0.05)
        srv = ClockServer(RequestHandlers(device, coordinator, clock, "x"), "127.0.0.1", 0)
        srv.start()
        try:
            with pytest.raises(HTTPError) as exc_info:
                get(srv, "/sync_time")
            assert exc_info.value.code == 504
            assert display.shown == encode_message(Message.SYNC)
        finally:
            srv.stop()

    def test_concurrent_requests(self, server, display):
        errors: list[Exception] = []

        def hit(target):
            try:
                get(server, target)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        targets = [f"/set_digits?{i}{i}" for i in range(10)] + ["/set_brightness?3"] * 5
        threads = [threading.Thread(target=hit, args=(t,)) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        assert errors == []
        assert display.violations == []
        assert display.brightness == 3


# ══════════════════════════════════════════════════════════════════════════
#  Service assembly
# ══════════════════════════════════════════════════════════════════════════


class FakeProbe:
    host = "1.1.1.1"
    port = 53

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected

    def is_connected(self) -> bool:
        return self.connected


@pytest.fixture()
def app_config():
    return parse_config(
        {
            "network": {"name": "lab", "connect_timeout": 0.05},
            "time": {"timezone": "UTC", "sync_poll_interval": 0.01, "sync_timeout": 1},
            "http": {"host": "127.0.0.1", "port": 0},
        }
    )


@pytest.fixture()
def app(app_config, raw_device, clock):
    application = ClockApp(app_config, raw_device, clock, FakeSync(complete_after=1), FakeProbe())
    yield application
    if application.server is not None:
        application.server.stop()


class TestClockApp:
    def test_handlers_rejected_before_start(self, app, display):
        with pytest.raises(DeviceNotReadyError):
            app.handlers.set_digits("/set_digits?12")
        assert display.calls == []

    def test_start_initialises_device_first(self, app, display):
        app.start()
        assert display.names[0] == "init"
        assert app.server is not None
        status, body = get(app.server, "/set_digits?12")
        assert status == 200

    def test_start_waits_for_initial_sync(self, app):
        sync = app.coordinator._sync  # noqa: SLF001
        app.start()
        assert sync.polls == 2
        assert sync.restarts == 0

    def test_skip_sync(self, app):
        app.start(skip_sync=True)
        assert app.coordinator._sync.polls == 0  # noqa: SLF001

    def test_network_failure_is_fatal(self, app_config, raw_device, clock):
        application = ClockApp(app_config, raw_device, clock, FakeSync(1), FakeProbe(False))
        with pytest.raises(NetworkError):
            application.start()
        assert application.server is None

    def test_run_uses_updater(self, app, display):
        app.start(skip_sync=True)
        stop = threading.Event()
        stop.set()
        app.run(stop)  # already stopped: no tick
        assert display.names.count("write_frame") == 1

    def test_shutdown_blanks_and_closes(self, app, display):
        app.start(skip_sync=True)
        app.shutdown()
        assert display.shown == bytes(4)
        assert display.closed
        assert app.server is None


# ══════════════════════════════════════════════════════════════════════════
#  CLI
# ══════════════════════════════════════════════════════════════════════════


class TestCli:
    def _args(self, *argv: str) -> argparse.Namespace:
        return build_parser().parse_args(list(argv))

    def test_missing_config_uses_defaults(self, tmp_path: Path):
        config = resolve_config(self._args("--config", str(tmp_path / "absent.yaml")))
        assert config.display.port == "/dev/ttyUSB0"

    def test_overrides(self, tmp_path: Path):
        path = tmp_path / "clock.yaml"
        path.write_text("display:\n  port: /dev/ttyS1\nhttp:\n  port: 9000\n")
        config = resolve_config(self._args("--config", str(path), "--port", "/dev/ttyACM0"))
        assert config.display.port == "/dev/ttyACM0"
        assert config.http.port == 9000

        config = resolve_config(self._args("--config", str(path), "--http-port", "81"))
        assert config.http.port == 81

    def test_invalid_config_exits_1(self, tmp_path: Path):
        path = tmp_path / "clock.yaml"
        path.write_text("display:\n  brightness: 9\n")
        assert main(["--config", str(path)]) == 1

    def test_unopenable_port_exits_1(self, tmp_path: Path):
        assert main(["--config", str(tmp_path / "absent.yaml"), "--port", "/dev/segclock-missing"]) == 1

    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
    def test_ctrl_c_interrupts_initial_sync(self, tmp_path: Path, monkeypatch, raw_device, display, clock):
        config = parse_config(
            {
                "time": {"timezone": "UTC", "sync_poll_interval": 0.01, "sync_timeout": None},
                "http": {"host": "127.0.0.1", "port": 0},
            }
        )
        sync = FakeSync(complete_after=None)
        application = ClockApp(config, raw_device, clock, sync, FakeProbe())
        monkeypatch.setattr(ClockApp, "from_config", classmethod(lambda cls, cfg: application))

        before = signal.getsignal(signal.SIGINT)
        interrupt = threading.Timer(0.2, os.kill, args=(os.getpid(), signal.SIGINT))
        finish = threading.Timer(5.0, setattr, args=(sync, "complete_after", 0))
        interrupt.start()
        finish.start()
        started = time.monotonic()
        try:
            rc = main(["--config", str(tmp_path / "absent.yaml")])
        finally:
            interrupt.cancel()
            finish.cancel()

        assert rc == 130
        assert time.monotonic() - started < 3.0
        assert application.server is None
        assert display.closed
        assert signal.getsignal(signal.SIGINT) is before
