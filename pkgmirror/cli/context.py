from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

import typer

from pkgmirror.core.config import MirrorConfig, load_config, load_token
from pkgmirror.core.errors import ErrorCode
from pkgmirror.core.result import Err
from pkgmirror.github.client import GitHubApi, GitHubClient
from pkgmirror.net.http import HttpClient, RealHttpClient
from pkgmirror.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: MirrorConfig
    console: ConsoleProtocol
    http: HttpClient
    github: GitHubApi


def build_context(*, config_path: Path | None, scratch_dir: Path | None) -> CLIContext:
    """Load config and credentials; exit with ENV_ERROR if either is unusable."""
    config_result = load_config(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    config = config_result.value
    if scratch_dir is not None:
        config = replace(config, scratch_dir=scratch_dir)

    token_result = load_token()
    if isinstance(token_result, Err):
        typer.echo(f"error: {token_result.error.message}", err=True)
        if token_result.error.hint:
            typer.echo(f"hint: {token_result.error.hint}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    http = RealHttpClient(timeout=config.http.timeout, user_agent=config.http.user_agent)
    github = GitHubClient(
        http,
        token_result.value,
        api_url=config.http.api_url,
        uploads_url=config.http.uploads_url,
    )
    return CLIContext(config=config, console=RichConsole(), http=http, github=github)
