"""In-memory GitHub for tests.

MockGitHub implements ContentSource and ReleaseBackend, records every call,
and lets a test inject failures per tag or asset name.

Usage:
    gh = MockGitHub()
    gh.add_file("Opentrons", "opentrons", "package.json", "edge", '{"dependencies": {}}')
    gh.fail_lookup["cypress-13.6.0"] = GitHubError("get release", 403, "rate limited")
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from pathlib import Path

from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.github.client import GitHubError, Release, ReleaseAsset, RepoContent

__all__ = ["MockGitHub", "UploadRecord"]


@dataclass(frozen=True, slots=True)
class UploadRecord:
    release_id: int
    name: str
    content: bytes
    content_type: str
    content_length: int


@dataclass
class MockGitHub:
    files: dict[tuple[str, str, str, str | None], RepoContent] = field(default_factory=dict)
    releases: dict[tuple[str, str, str], Release] = field(default_factory=dict)
    uploads: list[UploadRecord] = field(default_factory=list)
    calls: list[tuple[str, str]] = field(default_factory=list)
    fail_content: GitHubError | None = None
    fail_lookup: dict[str, GitHubError] = field(default_factory=dict)
    fail_create: dict[str, GitHubError] = field(default_factory=dict)
    fail_upload: dict[str, GitHubError] = field(default_factory=dict)
    _next_id: int = 1

    # Setup helpers

    def add_file(self, owner: str, repo: str, path: str, ref: str | None, text: str) -> None:
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        self.files[(owner, repo, path, ref)] = RepoContent(
            type="file", content=encoded, encoding="base64"
        )

    def add_release(self, owner: str, repo: str, tag: str) -> Release:
        release = self._new_release(owner, repo, tag)
        self.releases[(owner, repo, tag)] = release
        return release

    def _new_release(self, owner: str, repo: str, tag: str) -> Release:
        release_id = self._next_id
        self._next_id += 1
        return Release(
            id=release_id,
            tag=tag,
            html_url=f"https://github.com/{owner}/{repo}/releases/tag/{tag}",
            upload_url=f"https://uploads.github.com/repos/{owner}/{repo}/releases/{release_id}/assets{{?name,label}}",
        )

    # Inspection helpers

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def targets(self, operation: str) -> list[str]:
        return [target for op, target in self.calls if op == operation]

    # ContentSource

    def get_content(
        self, owner: str, repo: str, path: str, ref: str | None
    ) -> Result[RepoContent, GitHubError]:
        self.calls.append(("get_content", path))
        if self.fail_content is not None:
            return Err(self.fail_content)
        content = self.files.get((owner, repo, path, ref))
        if content is None:
            return Err(GitHubError(f"get {owner}/{repo}/{path}", 404, "Not Found"))
        return Ok(content)

    # ReleaseBackend

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> Result[Release, GitHubError]:
        self.calls.append(("get_release_by_tag", tag))
        if tag in self.fail_lookup:
            return Err(self.fail_lookup[tag])
        release = self.releases.get((owner, repo, tag))
        if release is None:
            return Err(GitHubError(f"get release {tag}", 404, "Not Found"))
        return Ok(release)

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
        self.calls.append(("create_release", tag))
        if tag in self.fail_create:
            return Err(self.fail_create[tag])
        if (owner, repo, tag) in self.releases:
            return Err(GitHubError(f"create release {tag}", 422, "already_exists"))
        return Ok(self.add_release(owner, repo, tag))

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
        self.calls.append(("upload_release_asset", name))
        if name in self.fail_upload:
            return Err(self.fail_upload[name])
        content = source.read_bytes()
        self.uploads.append(
            UploadRecord(
                release_id=release.id,
                name=name,
                content=content,
                content_type=content_type,
                content_length=content_length,
            )
        )
        return Ok(ReleaseAsset(id=len(self.uploads), name=name, size=len(content)))
