"""
Change identities: content hashes chained through the plan.

The identity of a change is the SHA-1 of its canonical form, framed the
way git frames objects:

    b"change " + <decimal byte length> + b"\\0" + <canonical form, UTF-8>

Because the canonical form contains the parent identity, every identity
depends on the whole chain before it. Registries written by sqitch and
earlier quitch releases store these values, so the framing and the
canonical form must stay byte-for-byte stable.
"""

from __future__ import annotations

import hashlib

from .change import Change

ID_LENGTH = 40


def frame(canonical: str) -> bytes:
    """Wrap a canonical change text in the object header."""
    body = canonical.encode("utf-8")
    return b"change " + str(len(body)).encode("ascii") + b"\0" + body


def change_id(project: str, change: Change, parent: str | None = None) -> str:
    """
    Compute the identity of a change at a given chain position.

    Args:
        project: Project name from the plan header
        change: The change record
        parent: Identity of the previous change in the plan (None for the first)

    Returns:
        Lower-case hex SHA-1 digest (40 characters)
    """
    return hashlib.sha1(frame(change.format(project, parent))).hexdigest()
