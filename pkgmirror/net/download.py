"""Artifact downloader.

This module provides a Downloader that:
- Builds URL and asset name from an Artifact and PlatformTarget
- Follows redirects itself, at most MAX_REDIRECTS hops
- Streams the body to a scratch file in fixed-size chunks
- Rejects bodies shorter or longer than the declared Content-Length
- Deletes the partial file on every failure path
- Owns the scratch file lifecycle (discard, remove empty scratch dir)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urljoin

from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.net.http import DEFAULT_CHUNK_SIZE
from pkgmirror.output.console import Style

if TYPE_CHECKING:
    from pkgmirror.artifacts.base import Artifact, PlatformTarget
    from pkgmirror.net.http import HttpClient, HttpStream
    from pkgmirror.output.console import ConsoleProtocol

__all__ = [
    "MAX_REDIRECTS",
    "REDIRECT_STATUSES",
    "Downloader",
    "ScratchFile",
    "DownloadFailure",
    "TooManyRedirects",
    "RedirectMissingLocation",
    "DownloadFailed",
    "DownloadError",
]

MAX_REDIRECTS = 5
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


@dataclass(frozen=True, slots=True)
class ScratchFile:
    """A downloaded artifact waiting to be uploaded.

    Attributes:
        path: Location in the scratch directory
        filename: Release asset name
        size: Size in bytes
    """

    path: Path
    filename: str
    size: int


@dataclass(frozen=True, slots=True)
class TooManyRedirects:
    url: str
    limit: int

    def __str__(self) -> str:
        return f"too many redirects (limit {self.limit}) starting at {self.url}"


@dataclass(frozen=True, slots=True)
class RedirectMissingLocation:
    url: str
    status: int

    def __str__(self) -> str:
        return f"HTTP {self.status} redirect without Location header ({self.url})"


@dataclass(frozen=True, slots=True)
class DownloadFailed:
    url: str
    status: int

    def __str__(self) -> str:
        return f"Failed to download: HTTP {self.status} ({self.url})"


@dataclass(frozen=True, slots=True)
class DownloadError:
    """Transport failure (DNS, TLS, reset connection, disk write)."""

    url: str
    cause: str

    def __str__(self) -> str:
        return f"{self.cause} ({self.url})"


DownloadFailure = TooManyRedirects | RedirectMissingLocation | DownloadFailed | DownloadError


class Downloader:
    """Fetch artifacts into a process-wide scratch directory.

    The directory is created lazily on the first download and removed once it
    is observed empty. Work items run one at a time, so nothing else writes
    to it concurrently.

    Usage:
        downloader = Downloader(http, Path("temp"), console)
        result = downloader.fetch(artifact, "13.6.0", target)
        if isinstance(result, Ok):
            upload(result.value.path)
        downloader.discard(result.value)
    """

    def __init__(
        self,
        http: HttpClient,
        scratch_dir: Path,
        console: ConsoleProtocol,
        *,
        max_redirects: int = MAX_REDIRECTS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._http = http
        self._scratch_dir = scratch_dir
        self._console = console
        self._max_redirects = max_redirects
        self._chunk_size = chunk_size

    @property
    def scratch_dir(self) -> Path:
        return self._scratch_dir

    def fetch(
        self, artifact: Artifact, version: str, target: PlatformTarget
    ) -> Result[ScratchFile, DownloadFailure]:
        """Download one platform target of an artifact."""
        url = artifact.download_url(version, target)
        filename = artifact.filename(version, target)
        self._console.print(f"Downloading {filename} from {url}", Style.DIM)
        return self.download(url, filename)

    def download(self, url: str, filename: str) -> Result[ScratchFile, DownloadFailure]:
        """Download url into the scratch directory as filename.

        Returns:
            Ok with the ScratchFile, or Err with the failure; on Err no file
            is left behind
        """
        try:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(DownloadError(url=url, cause=f"cannot create {self._scratch_dir}: {e}"))

        dest = self._scratch_dir / filename
        result = self._follow(url, dest)
        if isinstance(result, Err):
            self._remove_partial(dest)
            return result

        return Ok(ScratchFile(path=dest, filename=filename, size=result.value))

    def _follow(self, url: str, dest: Path) -> Result[int, DownloadFailure]:
        current = url
        hops = 0
        while True:
            opened = self._http.open_stream(current)
            if isinstance(opened, Err):
                return Err(DownloadError(url=current, cause=opened.error.message))

            with opened.value as response:
                status = response.status
                if status in REDIRECT_STATUSES:
                    location = response.location
                    if not location:
                        return Err(RedirectMissingLocation(url=current, status=status))
                    hops += 1
                    if hops > self._max_redirects:
                        return Err(TooManyRedirects(url=url, limit=self._max_redirects))
                    current = urljoin(current, location)
                    self._console.print(f"Redirecting to: {current}", Style.DIM)
                    continue

                if not 200 <= status < 300:
                    return Err(DownloadFailed(url=current, status=status))

                return self._write(response, dest, current)

    def _write(self, response: HttpStream, dest: Path, url: str) -> Result[int, DownloadFailure]:
        size = 0
        try:
            with open(dest, "wb") as f:
                for chunk in response.iter_chunks(self._chunk_size):
                    f.write(chunk)
                    size += len(chunk)
        except OSError as e:
            return Err(DownloadError(url=url, cause=str(e)))

        expected = response.content_length
        if expected is not None and size != expected:
            return Err(DownloadError(url=url, cause=f"incomplete body: got {size} of {expected} bytes"))
        return Ok(size)

    def _remove_partial(self, dest: Path) -> None:
        try:
            dest.unlink(missing_ok=True)
        except OSError as e:
            self._console.warning(f"Failed to remove partial download {dest}: {e}")

    def discard(self, scratch: ScratchFile) -> bool:
        """Delete a scratch file. Failures are reported, never raised.

        Returns:
            True if the file is gone
        """
        try:
            scratch.path.unlink()
        except FileNotFoundError:
            self._console.warning(f"Failed to cleanup {scratch.path}: already removed")
            return True
        except OSError as e:
            self._console.warning(f"Failed to cleanup {scratch.path}: {e}")
            return False
        self._console.print(f"Cleaned up {scratch.path}", Style.DIM)
        return True

    def remove_scratch_dir(self) -> bool:
        """Remove the scratch directory if it is empty.

        Returns:
            True if the directory was removed
        """
        try:
            self._scratch_dir.rmdir()
        except OSError:
            # Missing, or still holding files from another item.
            return False
        self._console.print("Cleaned up scratch directory", Style.DIM)
        return True
