"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from pkgmirror.core.result import Err, Ok, Result
from pkgmirror.output.errors import manifest_error_exit_code, print_manifest_error

if TYPE_CHECKING:
    from pkgmirror.cli.context import CLIContext
    from pkgmirror.services.errors import ManifestError


T = TypeVar("T")


def unwrap_or_exit(result: Result[T, ManifestError], ctx: CLIContext) -> T:
    """Return the value, or print the manifest error and exit with its code."""
    if isinstance(result, Err):
        print_manifest_error(result.error, ctx.console)
        exit_with_code(manifest_error_exit_code(result.error))
    assert isinstance(result, Ok)
    return result.value


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)
