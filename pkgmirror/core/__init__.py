"""Core types: results, exit codes, configuration."""

from .config import ConfigError, MirrorConfig, RepoRef, RunOptions, load_config, load_token
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "MirrorConfig",
    "RepoRef",
    "RunOptions",
    "load_config",
    "load_token",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
