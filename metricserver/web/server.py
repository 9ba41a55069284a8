"""HTTP server serving the metric API."""

from __future__ import annotations

import logging
import socket
import threading
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from metricserver.config import Config
from metricserver.storage.memory import MemStorage
from metricserver.web.handler import Handler
from metricserver.web.router import create_router

log = logging.getLogger(__name__)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = False
    block_on_close = True
    request_timeout: float | None = None


class _RequestHandler(WSGIRequestHandler):
    def setup(self) -> None:
        self.timeout = getattr(self.server, "request_timeout", None)
        super().setup()

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        log.debug("%s - %s", self.address_string(), format % args)


def _resolve_port(port: str) -> int:
    if not port:
        return 0
    try:
        return int(port)
    except ValueError:
        return socket.getservbyname(port, "tcp")


class Server:
    """Serves the metric API until :meth:`shutdown` is called."""

    def __init__(self, config: Config, mem_storage: MemStorage) -> None:
        self.handler = Handler(mem_storage)
        self.app = create_router(self.handler)
        self.host = config.http_server.host
        self.port = config.http_server.port
        self.timeout = config.http_server.timeout
        self.idle_timeout = config.http_server.idle_timeout
        self._lock = threading.Lock()
        self._httpd: _ThreadingWSGIServer | None = None
        self._closing = False
        self._finished = threading.Event()

    @property
    def server_address(self) -> tuple[str, int] | None:
        """The bound (host, port), or None before the server is listening."""
        httpd = self._httpd
        if httpd is None:
            return None
        host, port = httpd.server_address[:2]
        return host, port

    def run(self) -> None:
        """Listen and serve; blocks until the server is shut down."""
        with self._lock:
            if self._closing:
                return
            try:
                httpd = _ThreadingWSGIServer(
                    (self.host, _resolve_port(self.port)), _RequestHandler
                )
            except OSError as exc:
                raise OSError(f"server failed: {exc}") from exc
            httpd.request_timeout = self.timeout or None
            httpd.set_app(self.app)
            self._httpd = httpd

        log.info("Starting HTTP server on %s:%s", *httpd.server_address[:2])
        try:
            httpd.serve_forever(poll_interval=0.05)
        finally:
            httpd.server_close()
            self._finished.set()

    def shutdown(self, timeout: float = 30.0) -> None:
        """Stop accepting requests and wait up to ``timeout`` seconds for the rest."""
        with self._lock:
            self._closing = True
            httpd = self._httpd
        if httpd is None:
            return
        threading.Thread(target=httpd.shutdown, daemon=True).start()
        if not self._finished.wait(timeout):
            raise TimeoutError("server shutdown timed out")