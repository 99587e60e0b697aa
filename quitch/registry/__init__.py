"""
Registry of deployed changes.

The registry lives in its own database next to the target and holds two
tables: ``changes`` (one row per currently deployed change) and
``events`` (append-only lifecycle history).
"""

from __future__ import annotations

from .events import EVENT_KINDS, Committer, EventKind
from .store import Registry, SqlRegistry

__all__ = [
    "EVENT_KINDS",
    "Committer",
    "EventKind",
    "Registry",
    "SqlRegistry",
]
