"""Cypress desktop binary.

The npm package only contains the installer; the Electron-based test runner
is fetched separately from Cypress' download server, which answers with a
redirect to its CDN.
"""

from __future__ import annotations

from pkgmirror.artifacts.base import ArtifactSpec, BinaryArtifact, PlatformTarget

__all__ = ["CypressArtifact"]


class CypressArtifact(BinaryArtifact):
    """Cypress, one zip per platform; default asset naming."""

    spec = ArtifactSpec(id="cypress", name="Cypress")

    def download_url(self, version: str, target: PlatformTarget) -> str:
        return (
            f"https://download.cypress.io/desktop/{version}"
            f"?platform={target.platform}&arch={target.arch}"
        )
