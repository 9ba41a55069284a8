"""WSGI middleware compressing responses and decompressing requests."""

from __future__ import annotations

import gzip
import io
from http import HTTPStatus
from typing import Any, Callable, Iterable

from metricserver.web.handler import _plain_error, _read_body

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]

_REPLACED_HEADERS = {"content-encoding", "vary", "content-length"}


def gzip_middleware(app: WSGIApp) -> WSGIApp:
    """Wrap ``app`` so gzip request bodies are unpacked and responses packed."""

    def middleware(environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        if "gzip" in environ.get("HTTP_CONTENT_ENCODING", ""):
            try:
                raw = _read_body(environ)
            except OSError:
                raw = b""
            # A gzip stream starts with a 10-byte header: magic 1f 8b, method 8 (deflate).
            if len(raw) < 10 or raw[:3] != b"\x1f\x8b\x08":
                return _plain_error(start_response, HTTPStatus.BAD_REQUEST, "Failed to decompress request")
            environ = {**environ, "wsgi.input": gzip.GzipFile(fileobj=io.BytesIO(raw)), "CONTENT_LENGTH": ""}

        if "gzip" not in environ.get("HTTP_ACCEPT_ENCODING", ""):
            return app(environ, start_response)
        return _compressed_response(app, environ, start_response)

    return middleware


def _compressed_response(app: WSGIApp, environ: dict[str, Any], start_response: Callable) -> list[bytes]:
    captured: list[tuple[str, list[tuple[str, str]]]] = []
    chunks: list[bytes] = []

    def capture(status: str, headers: list[tuple[str, str]], exc_info: Any = None):
        if exc_info is not None and captured:
            raise exc_info[1].with_traceback(exc_info[2])
        captured[:] = [(status, list(headers))]
        return chunks.append

    result = app(environ, capture)
    try:
        chunks.extend(result)
    finally:
        if hasattr(result, "close"):
            result.close()
    if not captured:
        raise RuntimeError("application did not start a response")

    status, headers = captured[0]
    payload = gzip.compress(b"".join(chunks), mtime=0)
    headers = [(k, v) for k, v in headers if k.lower() not in _REPLACED_HEADERS]
    headers += [("Content-Encoding", "gzip"), ("Vary", "Accept-Encoding"), ("Content-Length", str(len(payload)))]
    start_response(status, headers)
    return [payload]