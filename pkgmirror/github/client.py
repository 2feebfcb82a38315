"""GitHub REST client for the two collaborators the mirror needs.

- ContentSource: read a file from a repository (Contents API)
- ReleaseBackend: look up, create and attach assets to releases

GitHubClient implements both on top of an HttpClient, so tests can drive it
with MockHttpClient; MockGitHub (mock.py) implements them in memory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import quote, urlencode

from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.core.structured import as_str_dict, get_int, get_str

if TYPE_CHECKING:
    from pkgmirror.net.http import HttpClient, HttpError

__all__ = [
    "GitHubError",
    "RepoContent",
    "Release",
    "ReleaseAsset",
    "ContentSource",
    "ReleaseBackend",
    "GitHubApi",
    "GitHubClient",
]

API_VERSION = "2022-11-28"


@dataclass(frozen=True, slots=True)
class GitHubError:
    """A failed GitHub call.

    Attributes:
        operation: What was attempted (e.g., "get release by tag")
        status: HTTP status (0 for transport or payload errors)
        message: Human-readable detail
    """

    operation: str
    status: int
    message: str

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        if self.status:
            return f"{self.operation} failed: HTTP {self.status} {self.message}"
        return f"{self.operation} failed: {self.message}"


@dataclass(frozen=True, slots=True)
class RepoContent:
    """Contents API entry. ``content`` is base64 for files."""

    type: str
    content: str
    encoding: str | None = None


@dataclass(frozen=True, slots=True)
class Release:
    id: int
    tag: str
    html_url: str
    upload_url: str


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    id: int
    name: str
    size: int


@runtime_checkable
class ContentSource(Protocol):
    def get_content(
        self, owner: str, repo: str, path: str, ref: str | None
    ) -> Result[RepoContent, GitHubError]: ...


@runtime_checkable
class ReleaseBackend(Protocol):
    def get_release_by_tag(
        self, owner: str, repo: str, tag: str
    ) -> Result[Release, GitHubError]:
        """Err with status 404 when no release has this tag."""
        ...

    def create_release(
        self,
        owner: str,
        repo: str,
        *,
        tag: str,
        name: str,
        body: str,
        draft: bool = False,
        prerelease: bool = False,
    ) -> Result[Release, GitHubError]: ...

    def upload_release_asset(
        self,
        owner: str,
        repo: str,
        release: Release,
        *,
        name: str,
        source: Path,
        content_type: str,
        content_length: int,
    ) -> Result[ReleaseAsset, GitHubError]: ...


@runtime_checkable
class GitHubApi(ContentSource, ReleaseBackend, Protocol):
    """Both collaborators from one object (GitHubClient, MockGitHub)."""


def _release_from(obj: object, operation: str) -> Result[Release, GitHubError]:
    data = as_str_dict(obj)
    if data is None:
        return Err(GitHubError(operation, 0, "unexpected release payload"))
    release_id = get_int(data, "id")
    tag = get_str(data, "tag_name")
    if release_id is None or tag is None:
        return Err(GitHubError(operation, 0, "release payload missing id or tag_name"))
    return Ok(
        Release(
            id=release_id,
            tag=tag,
            html_url=get_str(data, "html_url") or "",
            upload_url=get_str(data, "upload_url") or "",
        )
    )


class GitHubClient:
    """Token-authenticated GitHub REST client.

    Usage:
        client = GitHubClient(RealHttpClient(), token)
        match client.get_release_by_tag("Opentrons", "package-mirror", "cypress-13.6.0"):
            case Ok(release):
                print(release.html_url)
            case Err(error) if error.is_not_found:
                print("not cached yet")
    """

    def __init__(
        self,
        http: HttpClient,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        uploads_url: str = "https://uploads.github.com",
    ) -> None:
        self._http = http
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._uploads_url = uploads_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self._api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    @staticmethod
    def _wrap(error: HttpError, operation: str) -> GitHubError:
        return GitHubError(operation=operation, status=error.status, message=error.message)

    def get_content(
        self, owner: str, repo: str, path: str, ref: str | None
    ) -> Result[RepoContent, GitHubError]:
        operation = f"get {owner}/{repo}/{path}"
        url = f"{self._repo_url(owner, repo)}/contents/{quote(path)}"
        if ref:
            url += f"?{urlencode({'ref': ref})}"

        result = self._http.request_json("GET", url, headers=self._headers())
        if isinstance(result, Err):
            return Err(self._wrap(result.error, operation))

        if isinstance(result.value, list):
            # Directories come back as a JSON array of entries.
            return Ok(RepoContent(type="dir", content=""))

        data = as_str_dict(result.value)
        if data is None:
            return Err(GitHubError(operation, 0, "unexpected contents payload"))

        kind = get_str(data, "type")
        if kind is None:
            return Err(GitHubError(operation, 0, "contents payload missing type"))
        return Ok(
            RepoContent(
                type=kind,
                content=str(data.get("content") or ""),
                encoding=get_str(data, "encoding"),
            )
        )

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Result[Release, GitHubError]:
        operation = f"get release {tag}"
        url = f"{self._repo_url(owner, repo)}/releases/tags/{quote(tag, safe='')}"
        result = self._http.request_json("GET", url, headers=self._headers())
        if isinstance(result, Err):
            return Err(self._wrap(result.error, operation))
        return _release_from(result.value, operation)

    def create_release(
        self,
        owner: str,
        repo: str,
        *,
        tag: str,
        name: str,
        body: str,
        draft: bool = False,
        prerelease: bool = False,
    ) -> Result[Release, GitHubError]:
        operation = f"create release {tag}"
        payload = {
            "tag_name": tag,
            "name": name,
            "body": body,
            "draft": draft,
            "prerelease": prerelease,
        }
        result = self._http.request_json(
            "POST", f"{self._repo_url(owner, repo)}/releases", headers=self._headers(), body=payload
        )
        if isinstance(result, Err):
            return Err(self._wrap(result.error, operation))
        return _release_from(result.value, operation)

    def asset_upload_url(self, owner: str, repo: str, release: Release, name: str) -> str:
        # upload_url is a URI template: ".../assets{?name,label}"
        base = release.upload_url.split("{", 1)[0]
        if not base:
            base = (
                f"{self._uploads_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
                f"/releases/{release.id}/assets"
            )
        return f"{base}?{urlencode({'name': name})}"

    def upload_release_asset(
        self,
        owner: str,
        repo: str,
        release: Release,
        *,
        name: str,
        source: Path,
        content_type: str,
        content_length: int,
    ) -> Result[ReleaseAsset, GitHubError]:
        operation = f"upload {name}"
        headers = self._headers()
        headers["Content-Type"] = content_type
        headers["Content-Length"] = str(content_length)

        result = self._http.upload(
            self.asset_upload_url(owner, repo, release, name), source, headers=headers
        )
        if isinstance(result, Err):
            return Err(self._wrap(result.error, operation))

        data = as_str_dict(result.value)
        asset_id = get_int(data, "id") if data is not None else None
        if data is None or asset_id is None:
            return Err(GitHubError(operation, 0, "unexpected asset payload"))
        return Ok(
            ReleaseAsset(
                id=asset_id,
                name=get_str(data, "name") or name,
                size=get_int(data, "size") or content_length,
            )
        )
