"""GitHub collaborators: repository contents and releases."""

from pkgmirror.github.client import (
    ContentSource,
    GitHubApi,
    GitHubClient,
    GitHubError,
    Release,
    ReleaseAsset,
    ReleaseBackend,
    RepoContent,
)
from pkgmirror.github.mock import MockGitHub, UploadRecord

__all__ = [
    "ContentSource",
    "GitHubApi",
    "GitHubClient",
    "GitHubError",
    "MockGitHub",
    "Release",
    "ReleaseAsset",
    "ReleaseBackend",
    "RepoContent",
    "UploadRecord",
]
