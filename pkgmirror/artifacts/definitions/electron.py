"""Electron prebuilt binaries.

GitHub: https://github.com/electron/electron
"""

from __future__ import annotations

from pkgmirror.artifacts.base import ArtifactSpec, BinaryArtifact, PlatformTarget

__all__ = ["ElectronArtifact"]


class ElectronArtifact(BinaryArtifact):
    """Electron, distributed via GitHub Releases.

    The asset keeps Electron's upstream name (``electron-v{version}-...``) so
    that ``ELECTRON_MIRROR`` can point straight at the mirror release.
    """

    spec = ArtifactSpec(id="electron", name="Electron")
    repo = "electron/electron"

    def download_url(self, version: str, target: PlatformTarget) -> str:
        asset = self.filename(version, target)
        return f"https://github.com/{self.repo}/releases/download/v{version}/{asset}"

    def filename(self, version: str, target: PlatformTarget) -> str:
        return f"electron-v{version}-{target.platform}-{target.arch}.zip"
