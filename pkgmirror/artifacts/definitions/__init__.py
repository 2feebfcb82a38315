"""Artifact definitions.

Known binaries are a closed set, one class each. Everything else in the
manifest is mirrored as a registry tarball.

Usage:
    from pkgmirror.artifacts.definitions import get_artifact

    cypress = get_artifact("cypress")
    if cypress:
        for target in cypress.platforms:
            print(cypress.download_url("13.6.0", target))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pkgmirror.artifacts.definitions.cypress import CypressArtifact
from pkgmirror.artifacts.definitions.electron import ElectronArtifact
from pkgmirror.artifacts.definitions.puppeteer import PuppeteerArtifact
from pkgmirror.artifacts.definitions.registry import REGISTRY_TARGET, RegistryArtifact

if TYPE_CHECKING:
    from pkgmirror.artifacts.base import Artifact

__all__ = [
    # Artifact classes
    "CypressArtifact",
    "ElectronArtifact",
    "PuppeteerArtifact",
    "RegistryArtifact",
    "REGISTRY_TARGET",
    # Registry
    "ALL_ARTIFACTS",
    "available_ids",
    "get_artifact",
    "is_binary",
]


ALL_ARTIFACTS: tuple[Artifact, ...] = (
    CypressArtifact(),
    ElectronArtifact(),
    PuppeteerArtifact(),
)

_ARTIFACTS_BY_ID: dict[str, Artifact] = {a.spec.id: a for a in ALL_ARTIFACTS}


def get_artifact(name: str) -> Artifact | None:
    """Get the known binary artifact for a dependency name.

    Example:
        >>> get_artifact("electron").spec.name
        'Electron'
        >>> get_artifact("left-pad") is None
        True
    """
    return _ARTIFACTS_BY_ID.get(name)


def is_binary(name: str) -> bool:
    return name in _ARTIFACTS_BY_ID


def available_ids() -> list[str]:
    """Ids of all known binary artifacts, in registry order."""
    return [a.spec.id for a in ALL_ARTIFACTS]
