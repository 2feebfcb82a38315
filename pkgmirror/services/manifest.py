"""Manifest resolution: package.json in the source repo -> work items.

Merge order: ``devDependencies`` overlay ``dependencies``. A name keeps the
position where it first appeared (runtime names first, then names only
declared for development); when both groups declare a name with different
specs, the development spec wins and a VersionConflict is reported so the
caller can surface it.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pkgmirror.artifacts import Artifact, ArtifactKind, classify
from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.core.structured import StrDict, as_str_dict
from pkgmirror.services.errors import ManifestError, ManifestParseError, ManifestUnavailable

if TYPE_CHECKING:
    from pkgmirror.core.config import RepoRef
    from pkgmirror.github.client import ContentSource

__all__ = [
    "DependencyEntry",
    "Manifest",
    "PackageWorkItem",
    "ResolvedManifest",
    "VersionConflict",
    "fetch_manifest",
    "normalize_version",
    "parse_manifest",
    "resolve",
    "resolve_work_items",
]

RUNTIME_GROUP = "dependencies"
DEVELOPMENT_GROUP = "devDependencies"


def normalize_version(spec: str) -> str:
    """Strip one leading range operator: ``^1.2.3`` / ``~1.2.3`` -> ``1.2.3``."""
    spec = spec.strip()
    if spec[:1] in ("^", "~"):
        return spec[1:]
    return spec


@dataclass(frozen=True, slots=True)
class DependencyEntry:
    name: str
    raw_version: str

    @property
    def version(self) -> str:
        return normalize_version(self.raw_version)


@dataclass(frozen=True, slots=True)
class VersionConflict:
    name: str
    runtime: str
    development: str


@dataclass(frozen=True, slots=True)
class Manifest:
    """Merged dependency declarations, in manifest order."""

    entries: tuple[DependencyEntry, ...]
    conflicts: tuple[VersionConflict, ...] = ()

    def names(self) -> list[str]:
        return [e.name for e in self.entries]


@dataclass(frozen=True, slots=True)
class PackageWorkItem:
    """One package version to mirror."""

    name: str
    version: str
    artifact: Artifact

    @property
    def kind(self) -> ArtifactKind:
        return self.artifact.kind

    @property
    def display_name(self) -> str:
        return self.artifact.display_name


@dataclass(frozen=True, slots=True)
class ResolvedManifest:
    items: list[PackageWorkItem]
    conflicts: tuple[VersionConflict, ...] = field(default=())


def fetch_manifest(
    source: ContentSource, repo: RepoRef, path: str
) -> Result[str, ManifestError]:
    """Read the manifest text from the source repository."""
    where = f"{repo}:{path}"
    result = source.get_content(repo.owner, repo.repo, path, repo.ref)
    if isinstance(result, Err):
        return Err(ManifestUnavailable(where, str(result.error)))

    content = result.value
    if content.type != "file":
        return Err(ManifestUnavailable(where, f"{path} is not a file (got {content.type})"))

    try:
        raw = base64.b64decode(content.content, validate=False)
    except (binascii.Error, ValueError) as e:
        return Err(ManifestUnavailable(where, f"failed to decode contents: {e}"))

    try:
        return Ok(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        return Err(ManifestParseError(where, f"invalid UTF-8 in manifest: {e}"))


def _group(data: StrDict, key: str, where: str) -> Result[dict[str, str], ManifestError]:
    value = data.get(key)
    if value is None:
        return Ok({})
    table = as_str_dict(value)
    if table is None:
        return Err(ManifestParseError(where, f"{key} must be an object"))
    return Ok({name: spec for name, spec in table.items() if isinstance(spec, str)})


def parse_manifest(text: str, *, where: str = "package.json") -> Result[Manifest, ManifestError]:
    """Parse package.json text and merge its dependency groups."""
    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(ManifestParseError(where, f"invalid JSON: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(ManifestParseError(where, "manifest root must be an object"))

    runtime = _group(data, RUNTIME_GROUP, where)
    if isinstance(runtime, Err):
        return runtime
    development = _group(data, DEVELOPMENT_GROUP, where)
    if isinstance(development, Err):
        return development

    merged = dict(runtime.value)
    conflicts: list[VersionConflict] = []
    for name, spec in development.value.items():
        previous = merged.get(name)
        if previous is not None and previous != spec:
            conflicts.append(VersionConflict(name=name, runtime=previous, development=spec))
        merged[name] = spec

    entries = tuple(DependencyEntry(name=n, raw_version=s) for n, s in merged.items())
    return Ok(Manifest(entries=entries, conflicts=tuple(conflicts)))


def resolve_work_items(manifest: Manifest, registry_url: str) -> list[PackageWorkItem]:
    """Classify every merged dependency against the artifact registry."""
    return [
        PackageWorkItem(
            name=entry.name,
            version=entry.version,
            artifact=classify(entry.name, registry_url),
        )
        for entry in manifest.entries
    ]


def resolve(
    source: ContentSource, repo: RepoRef, path: str, registry_url: str
) -> Result[ResolvedManifest, ManifestError]:
    """Fetch, parse and classify the manifest in one step."""
    text = fetch_manifest(source, repo, path)
    if isinstance(text, Err):
        return text

    parsed = parse_manifest(text.value, where=f"{repo}:{path}")
    if isinstance(parsed, Err):
        return parsed

    manifest = parsed.value
    return Ok(
        ResolvedManifest(
            items=resolve_work_items(manifest, registry_url),
            conflicts=manifest.conflicts,
        )
    )
