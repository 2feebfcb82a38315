from __future__ import annotations

from pathlib import Path

import typer

from pkgmirror import __version__
from pkgmirror.cli.commands._helpers import exit_with_code, unwrap_or_exit
from pkgmirror.cli.context import build_context
from pkgmirror.core.config import RunOptions
from pkgmirror.core.errors import ErrorCode
from pkgmirror.services.batch import mirror_packages


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def mirror(
    deploy: bool = typer.Option(
        False,
        "--deploy",
        help=(
            "Create releases and upload assets. Without it, nothing is changed on GitHub "
            "and upstream vendors are not contacted (see --fetch)."
        ),
    ),
    package: str | None = typer.Option(
        None,
        "--package",
        help="Only cache this dependency (e.g. cypress, electron, puppeteer).",
    ),
    binaries_only: bool = typer.Option(
        False,
        "--binaries-only",
        help="Skip npm registry tarballs; only cache known binary packages.",
    ),
    fetch: bool = typer.Option(
        False,
        "--fetch",
        help="Download assets during a dry run to check the upstream URLs.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit non-zero if any package failed to cache.",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="TOML config overriding source/mirror repositories and paths.",
    ),
    scratch_dir: Path | None = typer.Option(
        None,
        "--scratch-dir",
        help="Directory for temporary downloads (default: ./temp).",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Cache binary packages from the source repo's package.json in GitHub releases."""
    ctx = build_context(config_path=config_path, scratch_dir=scratch_dir)
    options = RunOptions(
        deploy=deploy,
        package=package,
        binaries_only=binaries_only,
        fetch_in_dry_run=fetch,
        strict=strict,
    )

    result = mirror_packages(
        config=ctx.config,
        options=options,
        source=ctx.github,
        backend=ctx.github,
        http=ctx.http,
        console=ctx.console,
    )
    summary = unwrap_or_exit(result, ctx)

    if options.strict and summary.failed:
        exit_with_code(int(ErrorCode.NETWORK_ERROR))
