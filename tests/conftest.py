"""Pytest configuration and fixtures."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console

from quitch.change import Change
from quitch.plan import Plan

PLANNER = "Ruslan Fadeev <github@kinrany.dev>"

EXAMPLE_PLAN_TEXT = (
    "%syntax-version=1.0.0\n"
    "%project=quitch\n"
    "\n"
    "change_name 2024-03-07T03:19:34Z Ruslan Fadeev <github@kinrany.dev> # A description of the change\n"
    "change_num2 2024-03-10T00:04:24Z Ruslan Fadeev <github@kinrany.dev> # Second change\n"
)


@pytest.fixture
def example_change() -> Change:
    """The change used by the reference identity vectors."""
    return Change(
        name="change_name",
        note="A description of the change",
        date=datetime(2024, 3, 7, 3, 19, 34, tzinfo=timezone.utc),
        planner=PLANNER,
    )

@pytest.fixture
def second_change() -> Change:
    return Change(
        name="change_num2",
        note="Second change",
        date=datetime(2024, 3, 10, 0, 4, 24, tzinfo=timezone.utc),
        planner=PLANNER,
    )

@pytest.fixture
def example_plan(example_change: Change, second_change: Change) -> Plan:
    """Two-change plan for project quitch."""
    return Plan(project="quitch", changes=(example_change, second_change))

@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory with the example plan and revert scripts."""
    project = tmp_path / "project"
    (project / "revert").mkdir(parents=True)
    (project / "sqitch.plan").write_text(EXAMPLE_PLAN_TEXT, encoding="utf-8")
    (project / "revert" / "change_name.sql").write_text("DROP TABLE users;\n", encoding="utf-8")
    (project / "revert" / "change_num2.sql").write_text(
        "-- Revert quitch:change_num2\n"
        "ALTER TABLE users DROP COLUMN email;\n"
        "DROP INDEX users_email;\n",
        encoding="utf-8",
    )
    return project

@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()

@pytest.fixture
def console(console_output: io.StringIO) -> Console:
    """A console that writes plain text into ``console_output``."""
    return Console(file=console_output, width=200, color_system=None)


@pytest.fixture
def plan_text() -> str:
    return EXAMPLE_PLAN_TEXT
