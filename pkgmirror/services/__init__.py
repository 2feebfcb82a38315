"""Mirror services: manifest resolution, tags, publishing, batch runs."""

from pkgmirror.services.batch import BatchSummary, mirror_packages, run_batch, select_items
from pkgmirror.services.manifest import PackageWorkItem, resolve
from pkgmirror.services.publisher import ItemOutcome, OutcomeStatus, ReleasePublisher
from pkgmirror.services.tags import release_tag, sanitize_tag

__all__ = [
    "BatchSummary",
    "ItemOutcome",
    "OutcomeStatus",
    "PackageWorkItem",
    "ReleasePublisher",
    "mirror_packages",
    "release_tag",
    "resolve",
    "run_batch",
    "sanitize_tag",
    "select_items",
]
