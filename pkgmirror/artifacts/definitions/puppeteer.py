"""Chrome for Testing, as downloaded by Puppeteer."""

from __future__ import annotations

import re

from pkgmirror.artifacts.base import ArtifactSpec, BinaryArtifact, PlatformTarget

__all__ = ["PuppeteerArtifact"]

_NON_VERSION_CHARS = re.compile(r"[^\d.]")


class PuppeteerArtifact(BinaryArtifact):
    """Puppeteer's browser download.

    The Chrome for Testing bucket is keyed by a bare dotted version, so any
    other characters (pre-release tags, stray range operators) are dropped
    from the URL. The asset name keeps the declared version.
    """

    spec = ArtifactSpec(id="puppeteer", name="Puppeteer")

    def download_url(self, version: str, target: PlatformTarget) -> str:
        chrome_version = _NON_VERSION_CHARS.sub("", version)
        slug = f"{target.platform}-{target.arch}"
        return (
            "https://storage.googleapis.com/chrome-for-testing-public/"
            f"{chrome_version}/{slug}/chrome-{slug}.zip"
        )

    def filename(self, version: str, target: PlatformTarget) -> str:
        return f"puppeteer-chrome-{version}-{target.platform}-{target.arch}.zip"
