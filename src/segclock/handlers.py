"""
Request handlers for the HTTP control surface.

Each handler takes the request target (path plus optional ``?query``) and
returns a :class:`HandlerResult`.  Handlers hold no state of their own
beyond the shared device, coordinator and clock, so any number of them
may run at once alongside the periodic updater.

Malformed or out-of-range input is accepted but ignored: the reply text
is the same as for a successful call and ``outcome`` says what happened.

The ``set_digits`` token is used as the literal bytes of the request
target.  It is not percent-decoded, so ``?%41`` shows the three bytes
``%``, ``4`` and ``1``.  An empty token is ignored and the display keeps
its current frame; it is not blanked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .clock import SystemClock, current_digits
from .device import DeviceHandle, Outcome
from .encoding import encode_raw_token
from .timesync import SyncCoordinator

logger = logging.getLogger(__name__)

INDEX_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>segclock</title>
</head>
<body>
  <h1>segclock</h1>
  <div id="status"></div>
  <p>
    <input id="digits" maxlength="4" placeholder="1234">
    <button onclick="call('/set_digits?' + val('digits'))">Set digits</button>
  </p>
  <p>
    <input id="brightness" type="number" min="1" max="7" value="5">
    <button onclick="call('/set_brightness?' + val('brightness'))">Set brightness</button>
  </p>
  <p><button onclick="call('/sync_time')">Sync time</button></p>
  <pre id="reply"></pre>
  <script>
    function val(id) { return document.getElementById(id).value; }
    function call(url) {
      fetch(url).then(r => r.text()).then(t => {
        document.getElementById('reply').textContent = t;
        refresh();
      });
    }
    function refresh() {
      fetch('/get_status').then(r => r.text()).then(t => {
        document.getElementById('status').innerHTML = t;
      });
    }
    refresh();
  </script>
</body>
</html>
"""


@dataclass(frozen=True)
class HandlerResult:
    """Reply produced by a handler."""

    body: str
    outcome: Outcome = Outcome.APPLIED
    content_type: str = "text/plain; charset=utf-8"


def _query(target: str) -> str | None:
    """Return everything after the first ``?``, or ``None`` if absent."""
    _, sep, query = target.partition("?")
    return query if sep else None


class RequestHandlers:
    """The four control endpoints plus the index page.

    Args:
        device: Shared display handle.
        coordinator: Sync coordinator used by :meth:`sync`.
        clock: Wall clock for :meth:`status`.
        network_name: Network identity reported by :meth:`status`.
    """

    def __init__(
        self,
        device: DeviceHandle,
        coordinator: SyncCoordinator,
        clock: SystemClock,
        network_name: str,
    ) -> None:
        self._device = device
        self._coordinator = coordinator
        self._clock = clock
        self.network_name = network_name

    def index(self, target: str = "/") -> HandlerResult:
        return HandlerResult(INDEX_HTML, content_type="text/html; charset=utf-8")

    def status(self, target: str = "/get_status") -> HandlerResult:
        """Report network identity, timezone and the current time."""
        digits = current_digits(self._clock)
        body = (
            f"<p><strong>Network:</strong> {self.network_name}</p>\n"
            f"<p><strong>Time Zone:</strong> {self._clock.timezone_name}</p>\n"
            f"<p><strong>Current Time:</strong> {digits.as_text()}</p>"
        )
        return HandlerResult(body, content_type="text/html; charset=utf-8")

    def set_digits(self, target: str) -> HandlerResult:
        """Show the raw query token (up to the first ``&``) on the display.

        An empty or missing token leaves the display unchanged and returns
        :attr:`Outcome.IGNORED`.
        """
        query = _query(target)
        # http.server hands over the request line decoded as Latin-1
        token = query.split("&", 1)[0].encode("latin-1", "replace") if query is not None else b""
        if not token:
            logger.info("set_digits accepted but ignored: no token in %r", target)
            return HandlerResult("Digits inserted!", Outcome.IGNORED)

        self._device.write(encode_raw_token(token))
        logger.info("Display digits updated manually")
        return HandlerResult("Digits inserted!")

    def set_brightness(self, target: str) -> HandlerResult:
        """Apply the brightness level given as the whole query string.

        The query is an unsigned integer with an optional leading ``+``.
        """
        query = _query(target)
        number = query[1:] if query and query.startswith("+") else query
        outcome = Outcome.IGNORED
        if number and number.isascii() and number.isdigit():
            outcome = self._device.set_brightness(int(number))
        if outcome is Outcome.IGNORED:
            logger.info("set_brightness accepted but ignored: %r", query)
        return HandlerResult("Brightness Updated!", outcome)

    def sync(self, target: str = "/sync_time") -> HandlerResult:
        """Run a full time sync; returns only once it has completed."""
        self._coordinator.run_sync()
        return HandlerResult("Time synced successfully!")
