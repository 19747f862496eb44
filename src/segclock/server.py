"""
HTTP front end for :class:`~segclock.handlers.RequestHandlers`.

One thread per request (``ThreadingHTTPServer``), so a pending time sync
only blocks the request that asked for it.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional

from .constants import DEFAULT_HTTP_HOST, DEFAULT_HTTP_PORT
from .exceptions import NetworkError, SegClockError, SyncTimeoutError
from .handlers import HandlerResult, RequestHandlers

logger = logging.getLogger(__name__)

ROUTES: dict[str, str] = {
    "/": "index",
    "/get_status": "status",
    "/set_digits": "set_digits",
    "/set_brightness": "set_brightness",
    "/sync_time": "sync",
}


class ClockRequestHandler(BaseHTTPRequestHandler):
    """Routes ``GET`` requests onto a :class:`RequestHandlers` instance."""

    handlers: Optional[RequestHandlers] = None  # set by ClockServer

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        path = self.path.partition("?")[0]
        name = ROUTES.get(path)
        if name is None or self.handlers is None:
            self._reply(404, f"No route for {path}")
            return

        handler: Callable[[str], HandlerResult] = getattr(self.handlers, name)
        try:
            result = handler(self.path)
        except SyncTimeoutError as exc:
            logger.error("Request %s timed out: %s", self.path, exc)
            self._reply(504, str(exc))
            return
        except SegClockError as exc:
            logger.error("Request %s failed: %s", self.path, exc)
            self._reply(500, str(exc))
            return

        self._reply(200, result.body, result.content_type)

    def _reply(self, code: int, body: str, content_type: str = "text/plain; charset=utf-8") -> None:
        data = body.encode("utf-8")
        try:
            self.send_response(code)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)
        except (ConnectionAbortedError, BrokenPipeError, ConnectionResetError) as exc:
            logger.warning("Connection closed by client: %s", exc)


class ClockServer:
    """Serves the control endpoints on a background thread.

    Args:
        handlers: The request handlers to expose.
        host: Interface to bind.
        port: TCP port; ``0`` picks a free one.
    """

    def __init__(
        self,
        handlers: RequestHandlers,
        host: str = DEFAULT_HTTP_HOST,
        port: int = DEFAULT_HTTP_PORT,
    ) -> None:
        class ConfiguredHandler(ClockRequestHandler):
            pass

        ConfiguredHandler.handlers = handlers
        try:
            self._httpd = ThreadingHTTPServer((host, port), ConfiguredHandler)
        except OSError as exc:
            raise NetworkError(f"Cannot listen on {host}:{port}: {exc}") from exc
        self._httpd.daemon_threads = True
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="segclock-http", daemon=True
        )
        self._thread.start()
        logger.info("HTTP server listening on %s:%d", *self.address)

    def stop(self) -> None:
        """Stop serving and release the socket (safe to call multiple times)."""
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join()
            self._thread = None
        self._httpd.server_close()
