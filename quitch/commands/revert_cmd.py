"""Revert command implementation - undo the last deployed change."""

from __future__ import annotations

from typing import Any

from rich.console import Console

from ..audit_log import log_operation
from ..config import Settings
from ..connect import connect
from ..errors import InvariantViolation, QuitchError
from ..plan import Plan, load_plan
from ..revert import Reverter, RevertResult
from ..scripts import ScriptStore
from ..target import Target


def _audit_metadata(plan: Plan, target: Target, result: RevertResult) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "project": plan.project,
        "target": str(target),
        "statements_executed": result.statements_executed,
        "change_deleted": result.change_deleted,
        "event_recorded": result.event_recorded,
    }
    if result.target is not None:
        metadata["change"] = result.target.name
        metadata["change_id"] = result.target.id
    if result.error is not None:
        metadata["error"] = str(result.error)
    if result.logging_error is not None:
        metadata["logging_error"] = str(result.logging_error)
    return metadata


def run_revert(settings: Settings, dry_run: bool = False, console: Console | None = None) -> int:
    """Revert the last deployed change of the plan.

    Args:
        settings: Resolved settings (plan file, registry name, target)
        dry_run: Show the revert plan without executing anything
        console: Output console (defaults to stderr)

    Returns:
        Exit code
    """
    console = console or Console(stderr=True)
    console.print("Reverting only the last change by default", style="dim")

    # Phase 1: load the plan and connect
    try:
        plan = load_plan(settings.plan_file, console)
        target = settings.resolve_target()
        databases = connect(target, settings.registry, committer=settings.committer, console=console)
    except (QuitchError, OSError) as e:
        console.print(str(e), style="red", markup=False)
        return 1

    # Phase 2: reconcile, select, execute
    try:
        with databases.executor() as executor:
            reverter = Reverter(plan, databases.registry, executor, ScriptStore(settings.top_dir), console=console)
            try:
                result = reverter.run(dry_run=dry_run)
            except InvariantViolation:
                raise
            except QuitchError as e:
                console.print(str(e), style="red", markup=False)
                return 1
    finally:
        databases.dispose()

    if result.dry_run or result.target is None:
        return 0

    try:
        log_operation(
            settings.top_dir,
            operation="revert",
            outcome="success" if result.success else "failure",
            metadata=_audit_metadata(plan, target, result),
        )
    except OSError as e:
        console.print(f"Warning: could not write the audit log: {e}", style="yellow", markup=False)

    if not result.success:
        console.print(f"Error: {result.error}", style="red", markup=False)
        if result.logging_error is not None:
            console.print(
                f"Error: recording the revert event also failed: {result.logging_error}",
                style="red",
                markup=False,
            )
        return 1
    return 0
