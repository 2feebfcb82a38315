"""Process exit codes.

A completed batch exits with OK even if some packages failed (unless the
caller asked for strict mode); the other codes are reserved for runs that
could not start or could not read the manifest.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the mirror CLI.

    - 0: Batch completed
    - 1: User error (unparseable manifest, bad arguments)
    - 2: Environment error (missing token, invalid config file)
    - 4: Network error (manifest unreachable, failed items in strict mode)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    NETWORK_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
