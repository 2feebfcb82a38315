"""Release tag derivation.

GitHub tags (and the git refs behind them) reject spaces, ``~``, ``^``,
``:`` and friends, while npm names and versions may carry ``@``, ``/`` and
``+``. A tag is derived as ``{name}-{version}`` with everything outside
``[A-Za-z0-9._-]`` replaced.

Distinct (name, version) pairs can map to the same tag (``@a/b`` and
``a-b``); that is accepted, and the batch runner warns when it happens.
"""

from __future__ import annotations

import re

__all__ = ["MAX_TAG_LENGTH", "release_tag", "sanitize_tag"]

MAX_TAG_LENGTH = 100

_INVALID = re.compile(r"[^A-Za-z0-9._-]")
_DASH_RUNS = re.compile(r"-{2,}")
_EDGE = ".-"


def sanitize_tag(text: str) -> str:
    """Map text to a tag-safe identifier.

    The result only contains ``[A-Za-z0-9._-]``, is at most 100 characters,
    has no ``--`` runs and never starts or ends with ``.`` or ``-``.
    Applying it twice gives the same result as applying it once.

    Example:
        >>> sanitize_tag("@types/node-^20.1.0")
        'types-node-20.1.0'
    """
    tag = _INVALID.sub("-", text)
    tag = _DASH_RUNS.sub("-", tag)
    # Strip every edge separator, not one: keeps the result valid and idempotent.
    tag = tag.strip(_EDGE)
    # Truncation can expose a separator at the new end.
    return tag[:MAX_TAG_LENGTH].rstrip(_EDGE)


def release_tag(name: str, version: str) -> str:
    """Tag of the mirror release for one package version."""
    return sanitize_tag(f"{name}-{version}")
