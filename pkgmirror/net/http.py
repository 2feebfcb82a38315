"""HTTP client abstraction.

This module provides:
- HttpClient: Protocol for the HTTP operations the mirror needs
- HttpStream: A single, unfollowed streaming GET response
- RealHttpClient: urllib implementation
- MockHttpClient: In-memory implementation for tests

``open_stream`` never follows redirects itself: the Downloader owns the
redirect policy (hop limit, missing Location). JSON requests follow
redirects normally, since the GitHub API uses them for renamed repos.
"""

from __future__ import annotations

import http.client
import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from email.message import Message
from pathlib import Path
from types import TracebackType
from typing import Protocol, Self, runtime_checkable

from pkgmirror.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpStream",
    "RealHttpClient",
    "MockHttpClient",
    "MockStream",
]

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for transport errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpStream(Protocol):
    """Response of a single GET, body not yet read."""

    @property
    def status(self) -> int: ...

    @property
    def location(self) -> str | None: ...

    @property
    def content_length(self) -> int | None:
        """Declared body size, or None when the server did not send one."""
        ...

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks.

        Raises:
            OSError: The connection failed or the body ended early
        """
        ...

    def close(self) -> None: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


@runtime_checkable
class HttpClient(Protocol):
    """HTTP operations, injectable so unit tests never touch the network."""

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        """Send a request with an optional JSON body and parse the JSON reply.

        Returns:
            Ok with the decoded JSON (None for an empty body), or Err for
            non-2xx statuses and transport failures
        """
        ...

    def upload(
        self,
        url: str,
        source: Path,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]:
        """POST a file's bytes, streamed from disk, and parse the JSON reply."""
        ...

    def open_stream(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpStream, HttpError]:
        """Issue a GET without following redirects.

        Returns:
            Ok with the response for any HTTP status (including 3xx and
            4xx/5xx), or Err only for transport-level failures
        """
        ...


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Surface 3xx responses as HTTPError instead of following them."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[no-untyped-def]
        return None


class _RawResponse(Protocol):
    def read(self, amt: int, /) -> bytes: ...

    def close(self) -> None: ...


def _parse_length(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


class _UrllibStream:
    def __init__(self, response: _RawResponse, status: int, headers: Message) -> None:
        self._response = response
        self._status = status
        self._location = headers.get("Location")
        self._content_length = _parse_length(headers.get("Content-Length"))

    @property
    def status(self) -> int:
        return self._status

    @property
    def location(self) -> str | None:
        return self._location

    @property
    def content_length(self) -> int | None:
        return self._content_length

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        try:
            while chunk := self._response.read(chunk_size):
                yield chunk
        except http.client.HTTPException as e:
            # IncompleteRead and friends are not OSErrors.
            raise OSError(f"connection broken: {e!r}") from e

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _transport_error(url: str, e: Exception) -> HttpError:
    match e:
        case urllib.error.URLError(reason=reason):
            return HttpError(url=url, status=0, message=str(reason))
        case TimeoutError():
            return HttpError(url=url, status=0, message="Request timed out")
        case _:
            return HttpError(url=url, status=0, message=str(e))


class RealHttpClient:
    """HTTP client using urllib with the system certificate store."""

    def __init__(self, timeout: float = 60.0, user_agent: str = "pkgmirror") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()
        self._stream_opener = urllib.request.build_opener(
            _NoRedirect(),
            urllib.request.HTTPSHandler(context=self._ssl_context),
        )

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if extra:
            headers.update(extra)
        return headers

    def _send(self, req: urllib.request.Request) -> Result[object, HttpError]:
        url = req.full_url
        try:
            with urllib.request.urlopen(
                req, timeout=self.timeout, context=self._ssl_context
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except (urllib.error.URLError, TimeoutError, ValueError, OSError) as e:
            return Err(_transport_error(url, e))

        if not raw.strip():
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        hdrs = self._headers(headers)
        data: bytes | None = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            hdrs["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=hdrs, method=method)
        return self._send(req)

    def upload(
        self,
        url: str,
        source: Path,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]:
        hdrs = self._headers(headers)
        try:
            with open(source, "rb") as f:
                hdrs.setdefault("Content-Length", str(source.stat().st_size))
                req = urllib.request.Request(url, data=f, headers=hdrs, method="POST")
                return self._send(req)
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"cannot read {source}: {e}"))

    def open_stream(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpStream, HttpError]:
        req = urllib.request.Request(url, headers=self._headers(headers))
        try:
            response = self._stream_opener.open(req, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            # 3xx (unfollowed) and 4xx/5xx land here; the error doubles as the response.
            return Ok(_UrllibStream(e, e.code, e.headers))
        except (urllib.error.URLError, TimeoutError, ValueError, OSError) as e:
            return Err(_transport_error(url, e))
        return Ok(_UrllibStream(response, response.status, response.headers))


@dataclass
class MockStream:
    """Canned streaming response.

    ``content_length`` is the declared size; leave it None to send no
    Content-Length. ``fail_after`` makes iteration raise OSError after that
    many bytes, simulating a connection dropped mid-download.
    """

    status: int = 200
    body: bytes = b""
    location: str | None = None
    content_length: int | None = None
    fail_after: int | None = None
    closed: bool = False

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        limit = len(self.body) if self.fail_after is None else self.fail_after
        for start in range(0, limit, chunk_size):
            yield self.body[start : min(start + chunk_size, limit)]
        if self.fail_after is not None:
            raise OSError("connection reset by peer (mock)")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


@dataclass(frozen=True, slots=True)
class MockUpload:
    url: str
    content: bytes
    headers: dict[str, str]


@dataclass
class MockHttpClient:
    """In-memory HTTP client.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://api.github.com/x", {"id": 1})
        client.set_redirect("https://a/file", "https://b/file")
        client.set_stream("https://b/file", MockStream(body=b"zip"))

    Unknown JSON routes answer 404; unknown stream URLs answer a 404 stream.
    """

    calls: list[tuple[str, str]] = field(default_factory=list)
    bodies: list[object] = field(default_factory=list)
    uploads: list[MockUpload] = field(default_factory=list)
    _json: dict[tuple[str, str], object | HttpError] = field(default_factory=dict)
    _uploads: dict[str, object | HttpError] = field(default_factory=dict)
    _streams: dict[str, HttpStream | HttpError] = field(default_factory=dict)

    def set_json(self, method: str, url: str, response: object | HttpError) -> None:
        self._json[(method.upper(), url)] = response

    def set_upload(self, url: str, response: object | HttpError) -> None:
        self._uploads[url] = response

    def set_stream(self, url: str, response: HttpStream | HttpError) -> None:
        self._streams[url] = response

    def set_download(self, url: str, content: bytes) -> None:
        self._streams[url] = MockStream(status=200, body=content, content_length=len(content))

    def set_redirect(self, url: str, location: str | None, status: int = 302) -> None:
        self._streams[url] = MockStream(status=status, location=location)

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        method = method.upper()
        self.calls.append((method, url))
        self.bodies.append(body)

        response = self._json.get((method, url))
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def upload(
        self,
        url: str,
        source: Path,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[object, HttpError]:
        self.calls.append(("UPLOAD", url))
        try:
            content = source.read_bytes()
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"cannot read {source}: {e}"))
        self.uploads.append(MockUpload(url=url, content=content, headers=dict(headers or {})))

        response = self._uploads.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def open_stream(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Result[HttpStream, HttpError]:
        self.calls.append(("STREAM", url))
        response = self._streams.get(url)
        if response is None:
            return Ok(MockStream(status=404))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def count(self, method: str) -> int:
        """Number of recorded calls with this method ("GET", "STREAM", ...)."""
        return sum(1 for m, _ in self.calls if m == method)
