"""Artifact registry: what to download for a dependency, and what to call it.

- Base types (base.py)
- Known binaries and the registry fallback (definitions/)
"""

from __future__ import annotations

from pkgmirror.artifacts.base import (
    DESKTOP_TARGETS,
    Artifact,
    ArtifactKind,
    ArtifactSpec,
    BinaryArtifact,
    PlatformTarget,
)
from pkgmirror.artifacts.definitions import (
    ALL_ARTIFACTS,
    REGISTRY_TARGET,
    RegistryArtifact,
    available_ids,
    get_artifact,
    is_binary,
)

__all__ = [
    "ALL_ARTIFACTS",
    "DESKTOP_TARGETS",
    "REGISTRY_TARGET",
    "Artifact",
    "ArtifactKind",
    "ArtifactSpec",
    "BinaryArtifact",
    "PlatformTarget",
    "RegistryArtifact",
    "available_ids",
    "classify",
    "get_artifact",
    "is_binary",
]


def classify(name: str, registry_url: str) -> Artifact:
    """Known binary artifact for name, else a registry tarball artifact."""
    return get_artifact(name) or RegistryArtifact(name, registry_url)
