"""Tests for pkgmirror.net.http - error type, MockHttpClient, RealHttpClient."""

from __future__ import annotations

import http.client
import json
import socket
import threading
from collections.abc import Iterator
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from pkgmirror.core.result import Err, Ok
from pkgmirror.net.download import DownloadError, Downloader
from pkgmirror.net.http import (
    HttpClient,
    HttpError,
    MockHttpClient,
    MockStream,
    RealHttpClient,
    _UrllibStream,
)
from pkgmirror.output.console import MockConsole


class TestHttpError:
    def test_str_with_status(self) -> None:
        error = HttpError(url="https://x/y", status=403, message="Forbidden")
        assert str(error) == "HTTP 403: Forbidden (https://x/y)"

    def test_str_transport(self) -> None:
        error = HttpError(url="https://x/y", status=0, message="Name or service not known")
        assert str(error) == "Name or service not known (https://x/y)"

    def test_is_not_found(self) -> None:
        assert HttpError("u", 404, "Not Found").is_not_found
        assert not HttpError("u", 403, "Forbidden").is_not_found


class TestProtocol:
    def test_implementations_satisfy_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)
        assert isinstance(RealHttpClient(timeout=1.0), HttpClient)

    def test_real_client_timeout(self) -> None:
        assert RealHttpClient(timeout=12.5).timeout == 12.5


class TestMockJson:
    def test_configured_route(self) -> None:
        client = MockHttpClient()
        client.set_json("GET", "https://api/x", {"id": 1})
        assert client.request_json("get", "https://api/x") == Ok({"id": 1})
        assert client.calls == [("GET", "https://api/x")]

    def test_unknown_route_is_404(self) -> None:
        result = MockHttpClient().request_json("GET", "https://api/missing")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_configured_error(self) -> None:
        client = MockHttpClient()
        client.set_json("POST", "https://api/x", HttpError("https://api/x", 500, "boom"))
        result = client.request_json("POST", "https://api/x", body={"a": 1})
        assert isinstance(result, Err)
        assert result.error.status == 500
        assert client.bodies == [{"a": 1}]


class TestMockUpload:
    def test_records_content_and_headers(self, tmp_path: Path) -> None:
        source = tmp_path / "a.zip"
        source.write_bytes(b"zipdata")
        client = MockHttpClient()
        client.set_upload("https://uploads/x", {"id": 9})

        result = client.upload("https://uploads/x", source, headers={"Content-Type": "application/zip"})

        assert result == Ok({"id": 9})
        assert client.uploads[0].content == b"zipdata"
        assert client.uploads[0].headers["Content-Type"] == "application/zip"
        assert client.count("UPLOAD") == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        result = MockHttpClient().upload("https://uploads/x", tmp_path / "gone.zip")
        assert isinstance(result, Err)
        assert result.error.status == 0


class TestMockStream:
    def test_chunks(self) -> None:
        stream = MockStream(body=b"abcdefg")
        assert list(stream.iter_chunks(3)) == [b"abc", b"def", b"g"]

    def test_fail_after(self) -> None:
        stream = MockStream(body=b"abcdefg", fail_after=4)
        chunks: list[bytes] = []
        with pytest.raises(OSError):
            for chunk in stream.iter_chunks(3):
                chunks.append(chunk)
        assert chunks == [b"abc", b"d"]

    def test_context_manager_closes(self) -> None:
        stream = MockStream()
        with stream:
            pass
        assert stream.closed

    def test_unknown_stream_is_404(self) -> None:
        client = MockHttpClient()
        result = client.open_stream("https://nowhere/file")
        assert isinstance(result, Ok)
        assert result.value.status == 404
        assert client.count("STREAM") == 1

    def test_redirect(self) -> None:
        client = MockHttpClient()
        client.set_redirect("https://a/f", "https://b/f", status=301)
        result = client.open_stream("https://a/f")
        assert isinstance(result, Ok)
        assert result.value.status == 301
        assert result.value.location == "https://b/f"


# =============================================================================
# RealHttpClient against a local server
# =============================================================================


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, format: str, *args: object) -> None:
        pass

    def _reply(self, status: int, body: bytes, headers: dict[str, str] | None = None) -> None:
        self.send_response(status)
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        match self.path:
            case "/file":
                self._reply(200, b"payload")
            case "/redirect":
                self._reply(302, b"", {"Location": "/file"})
            case "/json":
                self._reply(200, b'{"ok": true}', {"Content-Type": "application/json"})
            case "/short":
                self.send_response(200)
                self.send_header("Content-Length", "1000")
                self.end_headers()
                self.wfile.write(b"x" * 10)
                self.close_connection = True
            case "/chunked":
                self.protocol_version = "HTTP/1.1"
                self.send_response(200)
                self.send_header("Transfer-Encoding", "chunked")
                self.end_headers()
                self.wfile.write(b"ffff\r\n" + b"x" * 10)
                self.close_connection = True
            case _:
                self._reply(404, b"not found")

    def do_POST(self) -> None:
        length = int(self.headers["Content-Length"])
        data = self.rfile.read(length)
        body = {
            "received": len(data),
            "length": self.headers["Content-Length"],
            "type": self.headers["Content-Type"],
        }
        self._reply(201, json.dumps(body).encode(), {"Content-Type": "application/json"})


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Base URL of a local HTTP server, with proxies bypassed."""
    for var in ("http_proxy", "HTTP_PROXY", "all_proxy", "ALL_PROXY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_address[1]}"
    finally:
        httpd.shutdown()
        httpd.server_close()


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestRealOpenStream:
    """open_stream returns every HTTP status as a stream and never follows redirects."""

    def test_ok_body_and_length(self, server: str) -> None:
        result = RealHttpClient(timeout=5.0).open_stream(f"{server}/file")

        assert isinstance(result, Ok)
        with result.value as stream:
            assert stream.status == 200
            assert stream.content_length == 7
            assert b"".join(stream.iter_chunks(3)) == b"payload"

    def test_redirect_is_not_followed(self, server: str) -> None:
        result = RealHttpClient(timeout=5.0).open_stream(f"{server}/redirect")

        assert isinstance(result, Ok)
        with result.value as stream:
            assert stream.status == 302
            assert stream.location == "/file"

    def test_not_found_is_a_stream(self, server: str) -> None:
        result = RealHttpClient(timeout=5.0).open_stream(f"{server}/missing")

        assert isinstance(result, Ok)
        with result.value as stream:
            assert stream.status == 404

    def test_connection_refused(self) -> None:
        result = RealHttpClient(timeout=2.0).open_stream(f"http://127.0.0.1:{_free_port()}/file")

        assert isinstance(result, Err)
        assert result.error.status == 0


class TestRealJsonAndUpload:
    def test_request_json(self, server: str) -> None:
        assert RealHttpClient(timeout=5.0).request_json("GET", f"{server}/json") == Ok({"ok": True})

    def test_request_json_http_error(self, server: str) -> None:
        result = RealHttpClient(timeout=5.0).request_json("GET", f"{server}/missing")

        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_upload_streams_file_with_length(self, server: str, tmp_path: Path) -> None:
        source = tmp_path / "asset.zip"
        source.write_bytes(b"12345")

        result = RealHttpClient(timeout=5.0).upload(
            f"{server}/upload", source, headers={"Content-Type": "application/zip"}
        )

        assert result == Ok({"received": 5, "length": "5", "type": "application/zip"})


class TestUrllibStream:
    """The urllib stream wrapper turns broken bodies into OSError."""

    class _Truncated:
        def __init__(self) -> None:
            self.calls = 0

        def read(self, amt: int, /) -> bytes:
            self.calls += 1
            if self.calls == 1:
                return b"partial"
            raise http.client.IncompleteRead(b"", 100)

        def close(self) -> None:
            pass

    def test_incomplete_read_becomes_oserror(self) -> None:
        stream = _UrllibStream(self._Truncated(), 200, Message())
        chunks: list[bytes] = []

        with pytest.raises(OSError):
            for chunk in stream.iter_chunks(64):
                chunks.append(chunk)

        assert chunks == [b"partial"]

    def test_content_length_parsing(self) -> None:
        headers = Message()
        headers["Content-Length"] = "42"
        assert _UrllibStream(self._Truncated(), 200, headers).content_length == 42

        bogus = Message()
        bogus["Content-Length"] = "lots"
        assert _UrllibStream(self._Truncated(), 200, bogus).content_length is None
        assert _UrllibStream(self._Truncated(), 200, Message()).content_length is None

    def test_downloader_removes_partial_file(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream("https://example.com/f", _UrllibStream(self._Truncated(), 200, Message()))
        downloader = Downloader(client, tmp_path, MockConsole())

        result = downloader.download("https://example.com/f", "f.zip")

        assert isinstance(result, Err)
        assert isinstance(result.error, DownloadError)
        assert list(tmp_path.iterdir()) == []


class TestRealDownload:
    """Downloader end to end over a real socket."""

    def test_follows_redirect(self, server: str, tmp_path: Path) -> None:
        downloader = Downloader(RealHttpClient(timeout=5.0), tmp_path, MockConsole())

        result = downloader.download(f"{server}/redirect", "file.bin")

        assert isinstance(result, Ok)
        assert result.value.path.read_bytes() == b"payload"

    def test_short_body_fails_and_cleans_up(self, server: str, tmp_path: Path) -> None:
        downloader = Downloader(RealHttpClient(timeout=5.0), tmp_path, MockConsole())

        result = downloader.download(f"{server}/short", "short.bin")

        assert isinstance(result, Err)
        assert isinstance(result.error, DownloadError)
        assert "got 10 of 1000 bytes" in result.error.cause
        assert list(tmp_path.iterdir()) == []

    def test_truncated_chunked_body_fails_and_cleans_up(self, server: str, tmp_path: Path) -> None:
        downloader = Downloader(RealHttpClient(timeout=5.0), tmp_path, MockConsole())

        result = downloader.download(f"{server}/chunked", "chunked.bin")

        assert isinstance(result, Err)
        assert isinstance(result.error, DownloadError)
        assert list(tmp_path.iterdir()) == []
