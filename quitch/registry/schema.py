"""
Registry tables.

Column names follow the sqitch registry so an existing registry can be
read in place. ``requires``, ``conflicts`` and ``tags`` are reserved for
dependency tracking and are always written empty.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

from .events import EVENT_KINDS

metadata = MetaData()

_event_check = "event IN ({})".format(", ".join(f"'{kind}'" for kind in sorted(EVENT_KINDS)))


def _attribution_columns() -> list[Column]:
    return [
        Column("committed_at", DateTime(timezone=True), nullable=False),
        Column("committer_name", String(512), nullable=False),
        Column("committer_email", String(512), nullable=False),
        Column("planned_at", DateTime(timezone=True), nullable=False),
        Column("planner_name", String(512), nullable=False),
        Column("planner_email", String(512), nullable=False),
    ]


changes = Table(
    "changes",
    metadata,
    Column("change_id", String(40), primary_key=True),
    Column("script_hash", String(40), nullable=True),
    Column("change", String(255), nullable=False),
    Column("project", String(255), nullable=False),
    Column("note", Text, nullable=False, default=""),
    *_attribution_columns(),
)

events = Table(
    "events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event", String(6), nullable=False),
    Column("change_id", String(40), nullable=False),
    Column("change", String(255), nullable=False),
    Column("project", String(255), nullable=False),
    Column("note", Text, nullable=False, default=""),
    Column("requires", Text, nullable=False, default=""),
    Column("conflicts", Text, nullable=False, default=""),
    Column("tags", Text, nullable=False, default=""),
    *_attribution_columns(),
    CheckConstraint(_event_check, name="ck_events_event"),
)
