"""Error presentation for errors that end a run.

Per-item failures are printed by the publisher as they happen; only config
and manifest errors reach this module.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pkgmirror.core.errors import ErrorCode
from pkgmirror.output.console import Style
from pkgmirror.services.errors import ManifestParseError, ManifestUnavailable

if TYPE_CHECKING:
    from pkgmirror.output.console import ConsoleProtocol
    from pkgmirror.services.errors import ManifestError

__all__ = ["print_manifest_error", "manifest_error_exit_code"]


def print_manifest_error(error: ManifestError, console: ConsoleProtocol) -> None:
    match error:
        case ManifestUnavailable(source=source, message=message, hint=hint):
            console.error(f"Error fetching manifest from {source}: {message}")
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case ManifestParseError(source=source, message=message):
            console.error(f"Error parsing manifest {source}: {message}")


def manifest_error_exit_code(error: ManifestError) -> int:
    match error:
        case ManifestUnavailable():
            return int(ErrorCode.NETWORK_ERROR)
        case ManifestParseError():
            return int(ErrorCode.USER_ERROR)
