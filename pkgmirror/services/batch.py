"""Batch runner: resolve the manifest once, publish every selected item.

Items are processed one at a time in manifest order. Each item's outcome is
independent; a failed item never stops the batch. Only manifest errors end a
run early, and they are returned to the caller rather than printed here.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pkgmirror.artifacts import ArtifactKind, available_ids
from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.net.download import Downloader
from pkgmirror.output.console import Style
from pkgmirror.services.manifest import resolve
from pkgmirror.services.publisher import ReleasePublisher
from pkgmirror.services.tags import release_tag

if TYPE_CHECKING:
    from pkgmirror.core.config import MirrorConfig, RunOptions
    from pkgmirror.github.client import ContentSource, ReleaseBackend
    from pkgmirror.net.http import HttpClient
    from pkgmirror.output.console import ConsoleProtocol
    from pkgmirror.services.errors import ManifestError
    from pkgmirror.services.manifest import PackageWorkItem, VersionConflict
    from pkgmirror.services.publisher import ItemOutcome

__all__ = [
    "BatchSummary",
    "find_tag_collisions",
    "mirror_packages",
    "run_batch",
    "select_items",
]


@dataclass(frozen=True, slots=True)
class BatchSummary:
    outcomes: tuple[ItemOutcome, ...]
    deploy: bool

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def all_failed(self) -> bool:
        """True when there was work to do and none of it succeeded."""
        return self.total > 0 and self.succeeded == 0

    def failed_names(self) -> list[str]:
        return [o.item.name for o in self.outcomes if not o.success]


def select_items(
    items: Iterable[PackageWorkItem],
    *,
    package: str | None = None,
    binaries_only: bool = False,
) -> list[PackageWorkItem]:
    """Apply the --package and --binaries-only filters, keeping order.

    An unknown package name selects nothing; that is not an error.
    """
    selected = list(items)
    if binaries_only:
        selected = [i for i in selected if i.kind == ArtifactKind.BINARY]
    if package is not None:
        selected = [i for i in selected if i.name == package]
    return selected


def find_tag_collisions(items: Iterable[PackageWorkItem]) -> dict[str, list[str]]:
    """Tags that more than one item maps to, with the colliding names."""
    by_tag: defaultdict[str, list[str]] = defaultdict(list)
    for item in items:
        by_tag[release_tag(item.name, item.version)].append(f"{item.name}@{item.version}")
    return {tag: names for tag, names in by_tag.items() if len(names) > 1}


def _print_header(
    console: ConsoleProtocol,
    options: RunOptions,
    config: MirrorConfig,
    discovered: Sequence[PackageWorkItem],
    selected: Sequence[PackageWorkItem],
) -> None:
    binaries = sum(1 for i in discovered if i.kind == ArtifactKind.BINARY)
    console.header("Package Cache Automation")
    console.print(f"Mode: {options.mode_label}")
    console.print(f"Source Repository: {config.source.slug}")
    console.print(f"Mirror Repository: {config.mirror.slug}")
    console.print(
        f"Found {len(discovered)} packages in {config.manifest_path} ({binaries} binary)"
    )
    if selected:
        console.print(f"Packages to process: {', '.join(i.name for i in selected)}")


def _print_conflicts(console: ConsoleProtocol, conflicts: Sequence[VersionConflict]) -> None:
    for c in conflicts:
        console.warning(
            f"{c.name} is declared as {c.runtime} in dependencies and {c.development} "
            f"in devDependencies; using {c.development}"
        )


def _print_summary(console: ConsoleProtocol, summary: BatchSummary) -> None:
    console.header("Summary:")
    console.print(f"Successfully processed: {summary.succeeded}/{summary.total} packages")

    if summary.failed:
        console.print(f"Failed: {', '.join(summary.failed_names())}", Style.WARNING)
    if summary.all_failed:
        console.error("No packages were cached")

    console.newline()
    if not summary.deploy:
        console.print("This was a dry run. Use --deploy to actually create releases.", Style.INFO)
    elif summary.failed == 0:
        console.success("All packages have been cached in GitHub releases!")


def run_batch(
    items: Sequence[PackageWorkItem],
    publisher: ReleasePublisher,
    console: ConsoleProtocol,
) -> BatchSummary:
    """Publish items in order and print the summary."""
    for tag, names in find_tag_collisions(items).items():
        console.warning(f"{', '.join(names)} share release tag {tag}")

    outcomes = tuple(publisher.publish(item) for item in items)
    summary = BatchSummary(outcomes=outcomes, deploy=publisher.deploy)
    _print_summary(console, summary)
    return summary


def mirror_packages(
    *,
    config: MirrorConfig,
    options: RunOptions,
    source: ContentSource,
    backend: ReleaseBackend,
    http: HttpClient,
    console: ConsoleProtocol,
) -> Result[BatchSummary, ManifestError]:
    """Full run: fetch the manifest, select work items, publish them."""
    console.print(f"Fetching {config.manifest_path} from {config.source}...", Style.DIM)
    resolved = resolve(source, config.source, config.manifest_path, config.registry_url)
    if isinstance(resolved, Err):
        return resolved

    discovered = resolved.value.items
    selected = select_items(
        discovered, package=options.package, binaries_only=options.binaries_only
    )

    _print_header(console, options, config, discovered, selected)
    _print_conflicts(console, resolved.value.conflicts)

    if not selected:
        console.warning("No packages found to cache.")
        if options.package is not None:
            console.print(f"No dependency named {options.package!r} in the manifest.", Style.DIM)
        console.print(f"Available binary packages: {', '.join(available_ids())}", Style.DIM)
        return Ok(BatchSummary(outcomes=(), deploy=options.deploy))

    publisher = ReleasePublisher(
        backend=backend,
        downloader=Downloader(http, config.scratch_dir, console),
        console=console,
        config=config,
        options=options,
    )
    return Ok(run_batch(selected, publisher, console))
