"""
Registry client: the persisted record of deployed changes.

The registry is owned by the database, not by this process. Callers read
snapshots and issue single-row mutations; nothing here assumes exclusive
access across concurrent invocations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import RegistryReadError, RegistryWriteError, SchemaBootstrapError
from ..plan import FullChange
from . import schema
from .events import Committer, EventKind


@runtime_checkable
class Registry(Protocol):
    """Capabilities the reconciler and the revert orchestrator rely on."""

    def apply_schema(self) -> None:
        """Create the registry tables if they do not exist (idempotent)."""
        ...

    def fetch_change_ids(self) -> dict[str, str]:
        """Map every deployed change identity to its change name."""
        ...

    def insert_change(self, change: FullChange, project: str) -> None:
        """Record a change as deployed."""
        ...

    def delete_change(self, change_id: str) -> None:
        """Remove a change from the deployed set."""
        ...

    def add_event(self, kind: EventKind, change: FullChange, project: str) -> None:
        """Append a lifecycle event for a change."""
        ...


class SqlRegistry:
    """Registry stored in the ``changes`` and ``events`` tables of a database."""

    def __init__(self, engine: Engine, committer: Committer | None = None):
        self.engine = engine
        self.committer = committer or Committer.default()

    def apply_schema(self) -> None:
        try:
            schema.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise SchemaBootstrapError(f"could not create registry tables: {e}") from e

    def fetch_change_ids(self) -> dict[str, str]:
        query = select(schema.changes.c.change_id, schema.changes.c.change)
        try:
            with self.engine.connect() as conn:
                return {row.change_id: row.change for row in conn.execute(query)}
        except SQLAlchemyError as e:
            raise RegistryReadError(f"could not read deployed changes: {e}") from e

    def insert_change(self, change: FullChange, project: str) -> None:
        row = self._snapshot(change, project)
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(schema.changes).values(script_hash=None, **row))
        except SQLAlchemyError as e:
            raise RegistryWriteError(f"could not record change {change.name}: {e}") from e

    def delete_change(self, change_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(schema.changes).where(schema.changes.c.change_id == change_id))
        except SQLAlchemyError as e:
            raise RegistryWriteError(f"could not delete change {change_id}: {e}") from e

    def add_event(self, kind: EventKind, change: FullChange, project: str) -> None:
        row = self._snapshot(change, project)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(schema.events).values(
                        event=EventKind(kind).value,
                        requires="",
                        conflicts="",
                        tags="",
                        **row,
                    )
                )
        except SQLAlchemyError as e:
            raise RegistryWriteError(f"could not append {EventKind(kind).value} event for {change.name}: {e}") from e

    # --- Query methods ---

    def events_for_change(self, change_id: str) -> list[dict[str, Any]]:
        """All events recorded for a change identity, oldest first."""
        query = (
            select(schema.events)
            .where(schema.events.c.change_id == change_id)
            .order_by(schema.events.c.id)
        )
        with self.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(query)]

    def _snapshot(self, change: FullChange, project: str) -> dict[str, Any]:
        """Column values shared by ``changes`` rows and ``events`` rows."""
        return {
            "change_id": change.id,
            "change": change.name,
            "project": project,
            "note": change.change.note,
            "committed_at": datetime.now(timezone.utc),
            "committer_name": self.committer.name,
            "committer_email": self.committer.email,
            "planned_at": change.change.date,
            "planner_name": change.change.planner_name,
            "planner_email": change.change.planner_email,
        }
