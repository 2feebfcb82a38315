"""Base definitions for mirrored artifacts.

This module defines the core abstractions:
- ArtifactKind: Binary download vs generic registry tarball
- PlatformTarget: One OS/arch combination to mirror
- ArtifactSpec: Immutable artifact metadata
- Artifact: Abstract base class (URL and asset name per target)
- BinaryArtifact: Base for vendor binaries shipped per desktop platform
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    "ArtifactKind",
    "PlatformTarget",
    "ArtifactSpec",
    "Artifact",
    "BinaryArtifact",
    "DESKTOP_TARGETS",
]


class ArtifactKind(Enum):
    """How an artifact is obtained.

    BINARY: Vendor binary, one asset per platform target
    REGISTRY: npm registry tarball, one platform-independent asset
    """

    BINARY = auto()
    REGISTRY = auto()

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True, slots=True)
class PlatformTarget:
    """One platform to mirror.

    Attributes:
        os: Display label (e.g., "macOS")
        platform: Vendor platform identifier (e.g., "darwin")
        arch: Vendor architecture identifier (e.g., "x64")
    """

    os: str
    platform: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os} ({self.platform}-{self.arch})"


DESKTOP_TARGETS: tuple[PlatformTarget, ...] = (
    PlatformTarget(os="Linux", platform="linux", arch="x64"),
    PlatformTarget(os="macOS", platform="darwin", arch="x64"),
    PlatformTarget(os="Windows", platform="win32", arch="x64"),
)


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """Immutable artifact metadata.

    Attributes:
        id: Dependency name as declared in package.json (e.g., "cypress")
        name: Human-readable name used in release titles (e.g., "Cypress")
    """

    id: str
    name: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Artifact id cannot be empty")
        if not self.name:
            raise ValueError("Artifact name cannot be empty")


class Artifact(ABC):
    """Recipe for turning (version, target) into a download URL and asset name.

    Subclasses must define:
    - spec: ArtifactSpec
    - download_url(): Upstream URL for a version/target
    - filename(): Release asset name for a version/target

    Instances are stateless and shared across versions.
    """

    spec: ArtifactSpec
    kind: ArtifactKind
    platforms: tuple[PlatformTarget, ...]
    content_type: str

    @abstractmethod
    def download_url(self, version: str, target: PlatformTarget) -> str:
        """Get the upstream URL.

        Args:
            version: Concrete version (range prefix already stripped)
            target: Platform target from ``platforms``

        Returns:
            Full URL to fetch
        """
        ...

    @abstractmethod
    def filename(self, version: str, target: PlatformTarget) -> str:
        """Get the release asset name. Downstream CI fetches by this name."""
        ...

    @property
    def display_name(self) -> str:
        return self.spec.name


class BinaryArtifact(Artifact):
    """Vendor binary published for each desktop platform as a zip.

    Example:
        class CypressArtifact(BinaryArtifact):
            spec = ArtifactSpec(id="cypress", name="Cypress")

            def download_url(self, version, target):
                return f"https://download.cypress.io/desktop/{version}?..."
    """

    kind = ArtifactKind.BINARY
    platforms = DESKTOP_TARGETS
    content_type = "application/zip"

    def filename(self, version: str, target: PlatformTarget) -> str:
        """Default asset name: ``{id}-{version}-{platform}-{arch}.zip``."""
        return f"{self.spec.id}-{version}-{target.platform}-{target.arch}.zip"
