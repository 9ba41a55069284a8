"""HTTP handler that accepts batches of metrics."""

from __future__ import annotations

import json
import zlib
from http import HTTPStatus
from typing import Any, Callable, Iterable

from metricserver.models import Metric


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def _status_line(status: HTTPStatus) -> str:
    return f"{status.value} {status.phrase}"


def _plain_error(start_response: Callable, status: HTTPStatus, message: str) -> list[bytes]:
    """Send a plain-text error response."""
    body = (message + "\n").encode("utf-8")
    start_response(_status_line(status), [
        ("Content-Type", "text/plain; charset=utf-8"),
        ("X-Content-Type-Options", "nosniff"),
        ("Content-Length", str(len(body))),
    ])
    return [body]


def _read_body(environ: dict[str, Any]) -> bytes:
    """Read the request body, honouring CONTENT_LENGTH when it is given."""
    stream = environ.get("wsgi.input")
    if stream is None:
        return b""
    length = environ.get("CONTENT_LENGTH") or ""
    return stream.read(int(length)) if length.isdigit() else stream.read()


def _decode_metrics(body: bytes) -> list[Metric]:
    """Decode the first JSON value of ``body`` as a list of metrics."""
    text = body.decode("utf-8", errors="replace").lstrip(" \t\r\n")
    document, _ = _DECODER.raw_decode(text)
    if not isinstance(document, (list, type(None))):
        raise ValueError("payload must be a JSON array of metrics")
    return [Metric() if item is None else Metric.from_dict(item) for item in document or []]


class Handler:
    """Stores every metric posted to it in the given storage."""

    def __init__(self, storage: Any) -> None:
        self.storage = storage

    def handle_metrics(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        """WSGI endpoint taking a JSON array of metrics."""
        try:
            metrics = _decode_metrics(_read_body(environ))
        except (ValueError, OSError, EOFError, zlib.error):
            return _plain_error(start_response, HTTPStatus.BAD_REQUEST, "invalid payload")

        for metric in metrics:
            self.storage.set(metric.name, metric.value)
        start_response(_status_line(HTTPStatus.OK), [("Content-Length", "0")])
        return [b""]