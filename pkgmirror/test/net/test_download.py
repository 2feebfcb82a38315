"""Tests for net/download.py - redirect-following Downloader."""

from __future__ import annotations

from pathlib import Path

from pkgmirror.artifacts import DESKTOP_TARGETS, get_artifact
from pkgmirror.core.result import Err, Ok
from pkgmirror.net.download import (
    MAX_REDIRECTS,
    DownloadError,
    DownloadFailed,
    Downloader,
    RedirectMissingLocation,
    ScratchFile,
    TooManyRedirects,
)
from pkgmirror.net.http import HttpError, MockHttpClient, MockStream
from pkgmirror.output.console import MockConsole


def _downloader(client: MockHttpClient, scratch: Path, **kwargs: int) -> tuple[Downloader, MockConsole]:
    console = MockConsole()
    return Downloader(client, scratch, console, **kwargs), console


class TestDownload:
    """Tests for Downloader.download()."""

    def test_success(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_download("https://example.com/file.zip", b"binary content")
        downloader, _ = _downloader(client, tmp_path / "temp")

        result = downloader.download("https://example.com/file.zip", "file.zip")

        assert isinstance(result, Ok)
        assert result.value.path == tmp_path / "temp" / "file.zip"
        assert result.value.size == len(b"binary content")
        assert result.value.path.read_bytes() == b"binary content"

    def test_scratch_dir_created_lazily(self, tmp_path: Path) -> None:
        scratch = tmp_path / "a" / "b"
        downloader, _ = _downloader(MockHttpClient(), scratch)
        assert not scratch.exists()

        downloader.download("https://example.com/missing.zip", "missing.zip")

        assert scratch.is_dir()

    def test_streams_in_chunks(self, tmp_path: Path) -> None:
        content = bytes(range(256)) * 10
        client = MockHttpClient()
        client.set_download("https://example.com/big.zip", content)
        downloader, _ = _downloader(client, tmp_path, chunk_size=100)

        result = downloader.download("https://example.com/big.zip", "big.zip")

        assert isinstance(result, Ok)
        assert result.value.path.read_bytes() == content

    def test_non_2xx_fails(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream("https://example.com/file.zip", MockStream(status=503))
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://example.com/file.zip", "file.zip")

        assert result == Err(DownloadFailed(url="https://example.com/file.zip", status=503))
        assert str(result.error) == "Failed to download: HTTP 503 (https://example.com/file.zip)"
        assert not (tmp_path / "file.zip").exists()

    def test_transport_error(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream("https://example.com/f", HttpError("https://example.com/f", 0, "timed out"))
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://example.com/f", "f.zip")

        assert result == Err(DownloadError(url="https://example.com/f", cause="timed out"))

    def test_mid_stream_failure_removes_partial(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream("https://example.com/f", MockStream(body=b"x" * 1000, fail_after=500))
        downloader, _ = _downloader(client, tmp_path, chunk_size=100)

        result = downloader.download("https://example.com/f", "f.zip")

        assert isinstance(result, Err)
        assert isinstance(result.error, DownloadError)
        assert list(tmp_path.iterdir()) == []

    def test_short_body_against_declared_length(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream(
            "https://example.com/f", MockStream(body=b"x" * 1000, content_length=100_000)
        )
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://example.com/f", "f.zip")

        assert result == Err(
            DownloadError(url="https://example.com/f", cause="incomplete body: got 1000 of 100000 bytes")
        )
        assert list(tmp_path.iterdir()) == []

    def test_no_declared_length_accepts_any_size(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_stream("https://example.com/f", MockStream(body=b"abc"))
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://example.com/f", "f.zip")

        assert isinstance(result, Ok)
        assert result.value.size == 3


class TestRedirects:
    def test_follows_redirect_chain(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_redirect("https://download.cypress.io/desktop/13.6.0", "https://cdn.cypress.io/a.zip")
        client.set_redirect("https://cdn.cypress.io/a.zip", "https://cdn2.cypress.io/a.zip", status=307)
        client.set_download("https://cdn2.cypress.io/a.zip", b"zip")
        downloader, console = _downloader(client, tmp_path)

        result = downloader.download("https://download.cypress.io/desktop/13.6.0", "a.zip")

        assert isinstance(result, Ok)
        assert client.count("STREAM") == 3
        assert len(console.find("Redirecting to:")) == 2

    def test_relative_location(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_redirect("https://host/dir/file", "/other/file")
        client.set_download("https://host/other/file", b"data")
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://host/dir/file", "file")

        assert isinstance(result, Ok)
        assert client.calls[-1] == ("STREAM", "https://host/other/file")

    def test_limit_reached_after_five_hops(self, tmp_path: Path) -> None:
        """Five redirects are followed; the sixth fails without a seventh request."""
        client = MockHttpClient()
        for i in range(10):
            client.set_redirect(f"https://r/{i}", f"https://r/{i + 1}")
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://r/0", "f.zip")

        assert result == Err(TooManyRedirects(url="https://r/0", limit=MAX_REDIRECTS))
        assert client.count("STREAM") == 6
        assert list(tmp_path.iterdir()) == []

    def test_five_redirects_succeed(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        for i in range(5):
            client.set_redirect(f"https://r/{i}", f"https://r/{i + 1}")
        client.set_download("https://r/5", b"ok")
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://r/0", "f.zip")

        assert isinstance(result, Ok)
        assert client.count("STREAM") == 6

    def test_missing_location(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        client.set_redirect("https://r/0", None, status=302)
        downloader, _ = _downloader(client, tmp_path)

        result = downloader.download("https://r/0", "f.zip")

        assert result == Err(RedirectMissingLocation(url="https://r/0", status=302))


class TestFetch:
    def test_fetch_uses_artifact_url_and_name(self, tmp_path: Path) -> None:
        electron = get_artifact("electron")
        assert electron is not None
        target = DESKTOP_TARGETS[0]
        url = "https://github.com/electron/electron/releases/download/v28.1.0/electron-v28.1.0-linux-x64.zip"
        client = MockHttpClient()
        client.set_download(url, b"electron")
        downloader, console = _downloader(client, tmp_path)

        result = downloader.fetch(electron, "28.1.0", target)

        assert isinstance(result, Ok)
        assert result.value.filename == "electron-v28.1.0-linux-x64.zip"
        assert console.find(f"from {url}")


class TestCleanup:
    def test_discard(self, tmp_path: Path) -> None:
        path = tmp_path / "a.zip"
        path.write_bytes(b"x")
        downloader, _ = _downloader(MockHttpClient(), tmp_path)

        assert downloader.discard(ScratchFile(path=path, filename="a.zip", size=1)) is True
        assert not path.exists()

    def test_discard_missing_warns(self, tmp_path: Path) -> None:
        downloader, console = _downloader(MockHttpClient(), tmp_path)

        gone = ScratchFile(path=tmp_path / "gone.zip", filename="gone.zip", size=0)

        assert downloader.discard(gone) is True
        assert console.has_warning()

    def test_remove_scratch_dir_only_when_empty(self, tmp_path: Path) -> None:
        scratch = tmp_path / "temp"
        scratch.mkdir()
        (scratch / "other").write_bytes(b"x")
        downloader, _ = _downloader(MockHttpClient(), scratch)

        assert downloader.remove_scratch_dir() is False
        assert scratch.exists()

        (scratch / "other").unlink()
        assert downloader.remove_scratch_dir() is True
        assert not scratch.exists()

    def test_remove_missing_scratch_dir(self, tmp_path: Path) -> None:
        downloader, _ = _downloader(MockHttpClient(), tmp_path / "never")
        assert downloader.remove_scratch_dir() is False
