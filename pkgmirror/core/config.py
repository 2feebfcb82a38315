"""Typed configuration loading.

Everything has a default that mirrors the Opentrons monorepo into
``Opentrons/package-mirror``; a TOML file can override any of it:

    [source]
    owner = "Opentrons"
    repo = "opentrons"
    ref = "edge"
    manifest = "package.json"

    [mirror]
    owner = "Opentrons"
    repo = "package-mirror"

    [registry]
    url = "https://registry.npmjs.org"

    [http]
    timeout = 60

    [paths]
    scratch = "temp"

The GitHub token never lives in the file; it is read from the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_table

__all__ = [
    "TOKEN_ENV_VAR",
    "ConfigError",
    "RepoRef",
    "HttpConfig",
    "MirrorConfig",
    "RunOptions",
    "load_config",
    "load_token",
]

TOKEN_ENV_VAR = "GITHUB_TOKEN"

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_UPLOADS_URL = "https://uploads.github.com"
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Config file or environment could not be used."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class RepoRef:
    """A GitHub repository, optionally pinned to a ref."""

    owner: str
    repo: str
    ref: str | None = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.slug if self.ref is None else f"{self.slug}@{self.ref}"


@dataclass(frozen=True, slots=True)
class HttpConfig:
    api_url: str = DEFAULT_API_URL
    uploads_url: str = DEFAULT_UPLOADS_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = "pkgmirror"


@dataclass(frozen=True, slots=True)
class MirrorConfig:
    """Where the manifest comes from and where releases go."""

    source: RepoRef = field(default_factory=lambda: RepoRef("Opentrons", "opentrons", "edge"))
    mirror: RepoRef = field(default_factory=lambda: RepoRef("Opentrons", "package-mirror"))
    manifest_path: str = "package.json"
    registry_url: str = DEFAULT_REGISTRY_URL
    http: HttpConfig = field(default_factory=HttpConfig)
    scratch_dir: Path = Path("temp")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> MirrorConfig:
        """Create config from a parsed TOML mapping, filling defaults."""
        defaults = cls()
        source: StrDict = get_table(data, "source") or {}
        mirror: StrDict = get_table(data, "mirror") or {}
        registry: StrDict = get_table(data, "registry") or {}
        http: StrDict = get_table(data, "http") or {}
        paths: StrDict = get_table(data, "paths") or {}

        timeout = get_float(http, "timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"http.timeout must be positive, got {timeout}")

        scratch = get_str(paths, "scratch")

        return cls(
            source=RepoRef(
                owner=get_str(source, "owner") or defaults.source.owner,
                repo=get_str(source, "repo") or defaults.source.repo,
                ref=get_str(source, "ref") or defaults.source.ref,
            ),
            mirror=RepoRef(
                owner=get_str(mirror, "owner") or defaults.mirror.owner,
                repo=get_str(mirror, "repo") or defaults.mirror.repo,
            ),
            manifest_path=get_str(source, "manifest") or defaults.manifest_path,
            registry_url=(get_str(registry, "url") or defaults.registry_url).rstrip("/"),
            http=HttpConfig(
                api_url=(get_str(http, "api_url") or DEFAULT_API_URL).rstrip("/"),
                uploads_url=(get_str(http, "uploads_url") or DEFAULT_UPLOADS_URL).rstrip("/"),
                timeout=timeout or DEFAULT_TIMEOUT_SECONDS,
                user_agent=get_str(http, "user_agent") or defaults.http.user_agent,
            ),
            scratch_dir=Path(scratch) if scratch else defaults.scratch_dir,
        )


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Per-run switches, passed explicitly to every side-effecting step.

    Attributes:
        deploy: Create releases and upload assets (False = dry run)
        package: Only process the dependency with this exact name
        binaries_only: Skip generic registry tarballs
        fetch_in_dry_run: Download assets during a dry run (nothing is uploaded)
        strict: Exit non-zero when any package failed
    """

    deploy: bool = False
    package: str | None = None
    binaries_only: bool = False
    fetch_in_dry_run: bool = False
    strict: bool = False

    @property
    def mode_label(self) -> str:
        return "DEPLOY" if self.deploy else "DRY RUN"


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path | None) -> Result[MirrorConfig, ConfigError]:
    """Load configuration from a TOML file, or defaults when path is None."""
    if path is None:
        return Ok(MirrorConfig())

    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(MirrorConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_token(env: Mapping[str, str] | None = None) -> Result[str, ConfigError]:
    """Read the GitHub token from the environment."""
    source = os.environ if env is None else env
    token = (source.get(TOKEN_ENV_VAR) or "").strip()
    if not token:
        return Err(
            ConfigError(
                f"{TOKEN_ENV_VAR} environment variable is required",
                hint=f"export {TOKEN_ENV_VAR}=<token with contents:read and releases:write>",
            )
        )
    return Ok(token)
