"""Fallback artifact for any npm dependency without a known binary."""

from __future__ import annotations

from pkgmirror.artifacts.base import Artifact, ArtifactKind, ArtifactSpec, PlatformTarget

__all__ = ["RegistryArtifact", "REGISTRY_TARGET"]

REGISTRY_TARGET = PlatformTarget(os="All Platforms", platform="registry", arch="all")


class RegistryArtifact(Artifact):
    """npm registry tarball.

    Registry layout: ``{registry}/{name}/-/{basename}-{version}.tgz`` where
    basename drops the ``@scope/`` prefix of scoped packages. The asset name
    is ``{basename}-{version}.tgz`` (for unscoped packages ``{name}-...``).
    """

    kind = ArtifactKind.REGISTRY
    platforms = (REGISTRY_TARGET,)
    content_type = "application/gzip"

    def __init__(self, package: str, registry_url: str) -> None:
        self.spec = ArtifactSpec(id=package, name=package)
        self.registry_url = registry_url.rstrip("/")

    @property
    def basename(self) -> str:
        return self.spec.id.rsplit("/", 1)[-1]

    def download_url(self, version: str, target: PlatformTarget) -> str:
        return f"{self.registry_url}/{self.spec.id}/-/{self.basename}-{version}.tgz"

    def filename(self, version: str, target: PlatformTarget) -> str:
        return f"{self.basename}-{version}.tgz"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegistryArtifact):
            return NotImplemented
        return (self.spec, self.registry_url) == (other.spec, other.registry_url)

    def __hash__(self) -> int:
        return hash((self.spec, self.registry_url))

    def __repr__(self) -> str:
        return f"RegistryArtifact({self.spec.id!r}, {self.registry_url!r})"
