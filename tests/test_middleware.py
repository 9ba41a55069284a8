import gzip
import io
from wsgiref.util import setup_testing_defaults

from metricserver.web.middleware import gzip_middleware


def make_environ(body, headers=None):
    environ = {}
    setup_testing_defaults(environ)
    environ.update(REQUEST_METHOD="POST", PATH_INFO="/update", CONTENT_LENGTH=str(len(body)))
    environ["wsgi.input"] = io.BytesIO(body)
    for key, value in (headers or {}).items():
        environ["HTTP_" + key.upper().replace("-", "_")] = value
    return environ


def call(app, body, headers=None):
    captured = {}

    def start_response(status, response_headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(response_headers)
        return lambda data: None

    payload = b"".join(app(make_environ(body, headers), start_response))
    return captured["status"], captured["headers"], payload


class EchoApp:
    def __init__(self):
        self.called = False

    def __call__(self, environ, start_response):
        self.called = True
        data = environ["wsgi.input"].read()
        start_response(
            "200 OK",
            [("Content-Type", "application/octet-stream"), ("Content-Length", str(len(data)))],
        )
        return [data]


def test_plain_request_passes_through():
    app = gzip_middleware(EchoApp())
    status, headers, body = call(app, b"hello")
    assert status == "200 OK"
    assert body == b"hello"
    assert "Content-Encoding" not in headers


def test_gzip_request_is_decompressed():
    app = gzip_middleware(EchoApp())
    original = b'[{"name": "cpu", "value": 1}]'
    _, _, body = call(app, gzip.compress(original), {"Content-Encoding": "gzip"})
    assert body == original


def test_invalid_gzip_request_is_rejected():
    echo = EchoApp()
    status, _, body = call(gzip_middleware(echo), b"not gzip at all", {"Content-Encoding": "gzip"})
    assert status.startswith("400")
    assert body == b"Failed to decompress request\n"
    assert echo.called is False


def test_empty_gzip_request_is_rejected():
    status, _, _ = call(gzip_middleware(EchoApp()), b"", {"Content-Encoding": "gzip"})
    assert status.startswith("400")


def test_response_is_compressed_when_accepted():
    status, headers, body = call(gzip_middleware(EchoApp()), b"payload", {"Accept-Encoding": "gzip, deflate"})
    assert status == "200 OK"
    assert headers["Content-Encoding"] == "gzip"
    assert headers["Vary"] == "Accept-Encoding"
    assert headers["Content-Length"] == str(len(body))
    assert gzip.decompress(body) == b"payload"


def test_round_trip_compressed_both_ways():
    original = b"metrics" * 50
    _, _, body = call(
        gzip_middleware(EchoApp()),
        gzip.compress(original),
        {"Content-Encoding": "gzip", "Accept-Encoding": "gzip"},
    )
    assert gzip.decompress(body) == original


def test_write_callable_output_is_compressed():
    def writer_app(environ, start_response):
        write = start_response("200 OK", [])
        write(b"abc")
        return [b"def"]

    _, _, body = call(gzip_middleware(writer_app), b"", {"Accept-Encoding": "gzip"})
    assert gzip.decompress(body) == b"abcdef"