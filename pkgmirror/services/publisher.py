"""Release publishing for one work item.

Flow per package version:

    check existence --exists--> done (already cached)
          |
        absent
          v
    create release --> for each platform: download, upload --> cleanup

- A lookup failure other than 404 fails the item; it is never read as
  "absent", since that could create a duplicate release.
- The first failing platform aborts the remaining ones.
- Cleanup runs on every path once creation has started: scratch files are
  deleted and the scratch directory is removed if empty.
- In dry-run mode nothing on GitHub is mutated and, unless
  ``fetch_in_dry_run`` is set, nothing is downloaded either.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum, auto
from typing import TYPE_CHECKING

from pkgmirror.artifacts import ArtifactKind
from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.output.console import Style
from pkgmirror.services.errors import (
    PublishError,
    ReleaseCreateFailed,
    TransientError,
    UploadFailed,
    describe_publish_error,
)
from pkgmirror.services.tags import release_tag

if TYPE_CHECKING:
    from pkgmirror.artifacts import PlatformTarget
    from pkgmirror.core.config import MirrorConfig, RepoRef, RunOptions
    from pkgmirror.github.client import Release, ReleaseBackend
    from pkgmirror.net.download import Downloader, ScratchFile
    from pkgmirror.output.console import ConsoleProtocol
    from pkgmirror.services.manifest import PackageWorkItem

__all__ = [
    "Absent",
    "Exists",
    "ExistenceCheck",
    "ItemOutcome",
    "OutcomeStatus",
    "ReleaseHandle",
    "ReleasePublisher",
    "check_release",
    "release_body",
    "release_title",
]

DRY_RUN = "[DRY RUN]"


@dataclass(frozen=True, slots=True)
class ReleaseHandle:
    """A release on the mirror, or the placeholder used in dry runs."""

    release: Release | None

    @classmethod
    def dry_run(cls) -> ReleaseHandle:
        return cls(release=None)

    @property
    def is_dry_run(self) -> bool:
        return self.release is None

    @property
    def id(self) -> int | str:
        return "dry-run" if self.release is None else self.release.id

    @property
    def html_url(self) -> str:
        return "" if self.release is None else self.release.html_url


@dataclass(frozen=True, slots=True)
class Exists:
    handle: ReleaseHandle


@dataclass(frozen=True, slots=True)
class Absent:
    pass


ExistenceCheck = Exists | Absent | TransientError


def check_release(backend: ReleaseBackend, repo: RepoRef, tag: str) -> ExistenceCheck:
    """Look up the release for tag on the mirror repository."""
    result = backend.get_release_by_tag(repo.owner, repo.repo, tag)
    if isinstance(result, Ok):
        return Exists(ReleaseHandle(release=result.value))
    if result.error.is_not_found:
        return Absent()
    return TransientError(tag=tag, cause=result.error)


class OutcomeStatus(Enum):
    CACHED = auto()  # release already existed
    CREATED = auto()  # release created (or would be, in a dry run)
    FAILED = auto()

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    item: PackageWorkItem
    tag: str
    status: OutcomeStatus
    release_url: str | None = None
    error: PublishError | None = None

    @property
    def success(self) -> bool:
        return self.status != OutcomeStatus.FAILED


def release_title(item: PackageWorkItem) -> str:
    return f"{item.display_name} {item.version} Cache"


def release_body(item: PackageWorkItem, source: RepoRef, created: datetime) -> str:
    display = item.display_name
    if item.kind == ArtifactKind.BINARY:
        summary = (
            f"Cached {display} {item.version} binaries for faster CI builds.\n\n"
            f"This release contains pre-downloaded {display} binaries for all "
            "supported platforms to speed up CI builds."
        )
    else:
        summary = (
            f"Cached {display} {item.version} package for faster CI builds.\n\n"
            f"This release contains the {item.name} {item.version} tarball from the npm registry."
        )
    return (
        f"{summary}\n\n"
        "**Generated by:** pkgmirror\n"
        f"**Package:** {item.name}\n"
        f"**Version:** {item.version}\n"
        f"**Source Repository:** {source.slug}\n"
        f"**Created:** {created.isoformat()}"
    )


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReleasePublisher:
    """Ensure the mirror holds a release for each work item.

    One publisher serves a whole batch; it keeps no state between items.
    """

    def __init__(
        self,
        *,
        backend: ReleaseBackend,
        downloader: Downloader,
        console: ConsoleProtocol,
        config: MirrorConfig,
        options: RunOptions,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._backend = backend
        self._downloader = downloader
        self._console = console
        self._config = config
        self._options = options
        self._clock = clock

    @property
    def deploy(self) -> bool:
        return self._options.deploy

    def publish(self, item: PackageWorkItem) -> ItemOutcome:
        """Mirror one package version. Never raises for expected failures."""
        tag = release_tag(item.name, item.version)
        self._console.header(f"Processing {item.display_name} {item.version}...")

        match check_release(self._backend, self._config.mirror, tag):
            case Exists(handle=handle):
                self._console.success(f"Release {tag} already exists")
                self._console.print(f"Release URL: {handle.html_url}", Style.DIM)
                return ItemOutcome(item, tag, OutcomeStatus.CACHED, release_url=handle.html_url)
            case TransientError() as error:
                return self._failed(item, tag, error)
            case Absent():
                self._console.print(f"Release {tag} does not exist. Creating...")

        scratch: list[ScratchFile] = []
        try:
            created = self._create_release(item, tag)
            if isinstance(created, Err):
                return self._failed(item, tag, created.error)
            handle = created.value

            transferred = self._transfer(item, handle, scratch)
            if isinstance(transferred, Err):
                return self._failed(item, tag, transferred.error)

            self._console.success(
                f"Successfully cached {item.display_name} {item.version} for all platforms"
            )
            if handle.is_dry_run:
                return ItemOutcome(item, tag, OutcomeStatus.CREATED)
            self._console.print(f"Release URL: {handle.html_url}", Style.DIM)
            return ItemOutcome(item, tag, OutcomeStatus.CREATED, release_url=handle.html_url)
        finally:
            self._cleanup(scratch)

    def _failed(self, item: PackageWorkItem, tag: str, error: PublishError) -> ItemOutcome:
        self._console.error(
            f"Failed to cache {item.display_name} {item.version}: {describe_publish_error(error)}"
        )
        return ItemOutcome(item, tag, OutcomeStatus.FAILED, error=error)

    def _create_release(
        self, item: PackageWorkItem, tag: str
    ) -> Result[ReleaseHandle, ReleaseCreateFailed]:
        title = release_title(item)
        body = release_body(item, self._config.source, self._clock())

        if not self.deploy:
            self._console.print(f"{DRY_RUN} Would create release: {tag}", Style.INFO)
            self._console.print(f"{DRY_RUN} Title: {title}", Style.INFO)
            self._console.print(f"{DRY_RUN} Body: {body}", Style.DIM)
            return Ok(ReleaseHandle.dry_run())

        mirror = self._config.mirror
        result = self._backend.create_release(
            mirror.owner,
            mirror.repo,
            tag=tag,
            name=title,
            body=body,
            draft=False,
            prerelease=False,
        )
        if isinstance(result, Err):
            return Err(ReleaseCreateFailed(tag=tag, cause=result.error))

        self._console.print(f"Created release: {result.value.html_url}")
        return Ok(ReleaseHandle(release=result.value))

    def _transfer(
        self, item: PackageWorkItem, handle: ReleaseHandle, scratch: list[ScratchFile]
    ) -> Result[None, PublishError]:
        artifact = item.artifact
        fetch = self.deploy or self._options.fetch_in_dry_run

        for target in artifact.platforms:
            self._console.print(f"Processing {target}...", Style.BOLD)

            if not fetch:
                self._announce_dry_run(item, target)
                continue

            fetched = self._downloader.fetch(artifact, item.version, target)
            if isinstance(fetched, Err):
                return fetched
            scratch.append(fetched.value)
            self._console.print(f"Downloaded {fetched.value.filename} ({fetched.value.size} bytes)")

            uploaded = self._upload(item, handle, fetched.value)
            if isinstance(uploaded, Err):
                return uploaded

        return Ok(None)

    def _announce_dry_run(self, item: PackageWorkItem, target: PlatformTarget) -> None:
        artifact = item.artifact
        filename = artifact.filename(item.version, target)
        url = artifact.download_url(item.version, target)
        self._console.print(f"{DRY_RUN} Would download {filename} from {url}", Style.INFO)
        self._console.print(f"{DRY_RUN} Would upload asset: {filename}", Style.INFO)

    def _upload(
        self, item: PackageWorkItem, handle: ReleaseHandle, scratch: ScratchFile
    ) -> Result[None, UploadFailed]:
        if handle.release is None:
            self._console.print(f"{DRY_RUN} Would upload asset: {scratch.filename}", Style.INFO)
            return Ok(None)

        mirror = self._config.mirror
        result = self._backend.upload_release_asset(
            mirror.owner,
            mirror.repo,
            handle.release,
            name=scratch.filename,
            source=scratch.path,
            content_type=item.artifact.content_type,
            content_length=scratch.size,
        )
        if isinstance(result, Err):
            return Err(UploadFailed(filename=scratch.filename, cause=result.error))

        self._console.print(f"Uploaded {scratch.filename}")
        return Ok(None)

    def _cleanup(self, scratch: list[ScratchFile]) -> None:
        for file in scratch:
            self._downloader.discard(file)
        self._downloader.remove_scratch_dir()
