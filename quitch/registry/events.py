"""
Registry event kinds and actor attribution.

Every lifecycle action on a change is appended to the ``events`` table
with a full snapshot of the change's metadata. Events are never updated
or deleted: the table is the permanent audit trail of the target.
"""

from __future__ import annotations

import getpass
from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    """Lifecycle actions recorded in the registry.

    - DEPLOY: the change's deploy script ran
    - FAIL: a deploy failed
    - MERGE: reserved for plan merges
    - REVERT: a revert of the change was performed or attempted
    """
    DEPLOY = "deploy"
    FAIL = "fail"
    MERGE = "merge"
    REVERT = "revert"


EVENT_KINDS = frozenset(kind.value for kind in EventKind)


@dataclass(frozen=True)
class Committer:
    """The operator on whose behalf registry rows are written."""

    name: str
    email: str = ""

    @classmethod
    def default(cls) -> Committer:
        try:
            return cls(name=getpass.getuser())
        except (KeyError, OSError):
            return cls(name="unknown")
