from __future__ import annotations

from dataclasses import dataclass

from pkgmirror.github.client import GitHubError
from pkgmirror.net.download import DownloadFailure


@dataclass(frozen=True, slots=True)
class ManifestUnavailable:
    source: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ManifestParseError:
    source: str
    message: str


ManifestError = ManifestUnavailable | ManifestParseError


@dataclass(frozen=True, slots=True)
class TransientError:
    """Existence check failed for a reason other than "not found"."""

    tag: str
    cause: GitHubError


@dataclass(frozen=True, slots=True)
class ReleaseCreateFailed:
    tag: str
    cause: GitHubError


@dataclass(frozen=True, slots=True)
class UploadFailed:
    filename: str
    cause: GitHubError


PublishError = TransientError | ReleaseCreateFailed | UploadFailed | DownloadFailure


def describe_publish_error(error: PublishError) -> str:
    match error:
        case TransientError(tag=tag, cause=cause):
            return f"could not check release {tag}: {cause}"
        case ReleaseCreateFailed(tag=tag, cause=cause):
            return f"could not create release {tag}: {cause}"
        case UploadFailed(filename=filename, cause=cause):
            return f"could not upload {filename}: {cause}"
        case _:
            return str(error)
