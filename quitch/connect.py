"""Connection to the target database and its registry."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateSchema

from .errors import SchemaBootstrapError, TargetConnectionError
from .registry import Committer, SqlRegistry
from .target import SqlExecutor, Target


@dataclass
class Databases:
    """Engines for one run: the target and the registry next to it."""

    target: Target
    engine: Engine
    registry_engine: Engine
    registry: SqlRegistry

    def executor(self) -> SqlExecutor:
        return SqlExecutor(self.engine)

    def dispose(self) -> None:
        self.registry_engine.dispose()
        self.engine.dispose()


def connect_db(target: Target, console: Console) -> Engine:
    """Create an engine and make sure the database answers."""
    console.print(f"Connecting to {target}", style="dim", markup=False)
    engine = target.create_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("select 1"))
    except SQLAlchemyError as e:
        engine.dispose()
        raise TargetConnectionError(f"cannot connect to {target}: {e}") from e
    console.print(f"Connected to {target.database or 'in-memory database'}", style="dim", markup=False)
    return engine


def create_schema_if_not_exists(engine: Engine, schema_name: str, console: Console) -> bool:
    """
    Create the registry database on the target's server.

    SQLite keeps the registry in its own file, created on first connect.

    Returns:
        True if the schema was created
    """
    if engine.dialect.name == "sqlite":
        return False
    try:
        if schema_name in inspect(engine).get_schema_names():
            return False
        console.print(f"Creating schema {schema_name}", style="dim", markup=False)
        with engine.begin() as conn:
            conn.execute(CreateSchema(schema_name))
    except SQLAlchemyError as e:
        raise SchemaBootstrapError(f"could not create registry schema {schema_name}: {e}") from e
    return True


def connect(
    target: Target,
    registry_name: str,
    *,
    committer: Committer | None = None,
    console: Console | None = None,
) -> Databases:
    """
    Connect to the target database and to the registry.

    The registry tables are created when missing.

    Raises:
        TargetConnectionError: if either database cannot be reached
        SchemaBootstrapError: if the registry cannot be created
    """
    console = console or Console(stderr=True)
    engine = connect_db(target, console)
    try:
        create_schema_if_not_exists(engine, registry_name, console)
        registry_engine = connect_db(target.registry(registry_name), console)
    except Exception:
        engine.dispose()
        raise

    registry = SqlRegistry(registry_engine, committer=committer)
    try:
        registry.apply_schema()
    except SchemaBootstrapError:
        registry_engine.dispose()
        engine.dispose()
        raise
    return Databases(target=target, engine=engine, registry_engine=registry_engine, registry=registry)
