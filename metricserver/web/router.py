"""Request routing for the metric API."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, Iterable

from metricserver.web.handler import Handler, _plain_error, _status_line
from metricserver.web.middleware import gzip_middleware

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


class Router:
    """Dispatches requests to WSGI applications by exact path and method."""

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, WSGIApp]] = {}

    def add_route(self, method: str, path: str, app: WSGIApp) -> None:
        """Register ``app`` for ``method`` requests on ``path``."""
        self._routes.setdefault(path, {})[method.upper()] = app

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        methods = self._routes.get(environ.get("PATH_INFO") or "/")
        if methods is None:
            return _plain_error(start_response, HTTPStatus.NOT_FOUND, "404 page not found")
        app = methods.get(environ.get("REQUEST_METHOD", "GET").upper())
        if app is None:
            start_response(_status_line(HTTPStatus.METHOD_NOT_ALLOWED),
                           [("Allow", ", ".join(sorted(methods))), ("Content-Length", "0")])
            return [b""]
        return app(environ, start_response)


def create_router(handler: Handler) -> WSGIApp:
    """Build the API: ``POST /update`` behind gzip handling."""
    router = Router()
    router.add_route("POST", "/update", handler.handle_metrics)
    return gzip_middleware(router)