"""
Revert of the last deployed change.

The orchestrator moves through a fixed sequence of states:

    IDLE -> VALIDATED -> TARGET_SELECTED -> SCRIPT_EXECUTING -> COMMITTING
         -> SUCCESS | FAILURE_RECORDED

``propose()`` covers the read-only part (reconcile, select the target,
load its revert script) and ``execute()`` the effectful part. Revert
scripts are not transactional: statements run one at a time and the first
failure stops the script, leaving earlier statements applied. After a
failure the registry row is kept and a ``revert`` event is still appended,
best effort, so the attempt is visible in the event history.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rich.console import Console

from .errors import InvariantViolation, QuitchError, ScriptExecutionError
from .plan import FullChange, Plan
from .reconcile import Reconciliation, reconcile, report_drift
from .registry import EventKind, Registry
from .scripts import ScriptStore, iter_statements
from .target import StatementExecutor


class RevertState(str, Enum):
    IDLE = "idle"
    VALIDATED = "validated"
    TARGET_SELECTED = "target_selected"
    SCRIPT_EXECUTING = "script_executing"
    COMMITTING = "committing"
    SUCCESS = "success"
    FAILURE_RECORDED = "failure_recorded"


class NothingToRevert(str, Enum):
    """Why a revert finished without touching the database."""
    PLAN_EMPTY = "plan_empty"
    NOTHING_DEPLOYED = "nothing_deployed"

    @property
    def message(self) -> str:
        if self is NothingToRevert.PLAN_EMPTY:
            return "Nothing to revert (the plan is empty)"
        return "Nothing to revert"


@dataclass
class RevertPlan:
    """What a revert would do (diagnostic output of ``Reverter.propose``)."""

    project: str
    reconciliation: Reconciliation
    target: FullChange | None = None
    reason: NothingToRevert | None = None
    script_path: Path | None = None
    script: str = ""

    @property
    def is_noop(self) -> bool:
        return self.target is None

    def summary(self) -> str:
        if self.target is None:
            return self.reason.message if self.reason else "Nothing to revert"
        statements = sum(1 for _ in iter_statements(self.script))
        lines = [
            "Revert Plan",
            f"  Project: {self.project or '(none)'}",
            f"  Change: {self.target.name} ({self.target.id})",
            f"  Script: {self.script_path} ({statements} statement(s))",
            f"  Deployed changes: {len(self.reconciliation.deployed)}",
        ]
        if self.reconciliation.drift is not None:
            lines.append(f"  Unplanned registry entries: {len(self.reconciliation.drift.orphans)}")
        return "\n".join(lines)


@dataclass
class RevertResult:
    """
    Outcome of a revert.

    On failure ``error`` holds the original script or registry error, and
    ``event_logging_attempted`` tells whether the best-effort ``revert``
    event was tried; ``logging_error`` holds its own failure, if any.
    """

    state: RevertState
    target: FullChange | None = None
    reason: NothingToRevert | None = None
    statements_executed: int = 0
    change_deleted: bool = False
    event_recorded: bool = False
    event_logging_attempted: bool = False
    error: QuitchError | None = None
    logging_error: QuitchError | None = None
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Re-raise the original error, noting a failed event append."""
        if self.error is None:
            return
        if self.logging_error is not None:
            self.error.add_note(f"recording the revert event also failed: {self.logging_error}")
        raise self.error


class Reverter:
    """Reverts the most recently deployed change of a plan."""

    def __init__(
        self,
        plan: Plan,
        registry: Registry,
        executor: StatementExecutor,
        scripts: ScriptStore,
        *,
        console: Console | None = None,
    ):
        self.plan = plan
        self.registry = registry
        self.executor = executor
        self.scripts = scripts
        self.console = console or Console(stderr=True)
        self.state = RevertState.IDLE
        self.history: list[RevertState] = [RevertState.IDLE]

    def _enter(self, state: RevertState) -> None:
        self.state = state
        self.history.append(state)

    # -------------------------------------------------------------------------
    # propose(): read-only phase
    # -------------------------------------------------------------------------

    def propose(self) -> RevertPlan:
        """
        Reconcile, select the change to revert and load its script.

        Raises:
            RegistryReadError: if the registry cannot be read
            ScriptNotFoundError: if the target has no revert script
            InvariantViolation: if the selected target is not in the chain
        """
        reconciliation = reconcile(self.registry, self.plan)
        self._enter(RevertState.VALIDATED)
        report_drift(reconciliation, self.console)

        chain = list(self.plan.full_changes())
        if reconciliation.first_undeployed is not None:
            target_id = reconciliation.first_undeployed.parent
        else:
            target_id = chain[-1].id if chain else None
        self._enter(RevertState.TARGET_SELECTED)

        if target_id is None:
            reason = NothingToRevert.PLAN_EMPTY if self.plan.is_empty() else NothingToRevert.NOTHING_DEPLOYED
            self.console.print(reason.message)
            self._enter(RevertState.SUCCESS)
            return RevertPlan(project=self.plan.project, reconciliation=reconciliation, reason=reason)

        target = next((c for c in chain if c.id == target_id), None)
        if target is None:
            raise InvariantViolation(f"change {target_id} selected for revert is not in the plan chain")

        return RevertPlan(
            project=self.plan.project,
            reconciliation=reconciliation,
            target=target,
            script_path=self.scripts.path("revert", target.name),
            script=self.scripts.read("revert", target.name),
        )

    # -------------------------------------------------------------------------
    # execute(): effectful phase
    # -------------------------------------------------------------------------

    def execute(self, revert_plan: RevertPlan) -> RevertResult:
        """Run the revert script, then update the registry.

        Never raises for script or registry errors; they are returned on
        the result (see ``RevertResult.raise_for_error``).
        """
        target = revert_plan.target
        if target is None:
            return RevertResult(state=self.state, reason=revert_plan.reason)

        result = RevertResult(state=self.state, target=target)
        try:
            self._enter(RevertState.SCRIPT_EXECUTING)
            self.console.print(f"Reverting {target.name}", markup=False)
            self._run_script(revert_plan.script, result)

            self._enter(RevertState.COMMITTING)
            self.registry.delete_change(target.id)
            result.change_deleted = True
            self.registry.add_event(EventKind.REVERT, target, revert_plan.project)
            result.event_recorded = True
        except QuitchError as e:
            result.error = e
            self.console.print(f"Failed to revert {target.name}", style="red", markup=False)
            self._record_failure(result, target, revert_plan.project)
            self._enter(RevertState.FAILURE_RECORDED)
            result.state = self.state
            return result

        self._enter(RevertState.SUCCESS)
        result.state = self.state
        self.console.print(f"Reverted {target.name}", style="green", markup=False)
        return result

    def run(self, *, dry_run: bool = False) -> RevertResult:
        """propose() followed by execute(), unless there is nothing to do."""
        revert_plan = self.propose()
        if revert_plan.is_noop:
            return RevertResult(state=self.state, reason=revert_plan.reason)
        if dry_run:
            self.console.print("\n[bold]DRY RUN[/bold] - No changes will be made\n")
            self.console.print(revert_plan.summary(), markup=False)
            return RevertResult(state=self.state, target=revert_plan.target, dry_run=True)
        return self.execute(revert_plan)

    def _run_script(self, script: str, result: RevertResult) -> None:
        for index, statement in enumerate(iter_statements(script), start=1):
            try:
                self.executor.execute(statement)
            except Exception as e:
                raise ScriptExecutionError(index, statement, e) from e
            result.statements_executed += 1

    def _record_failure(self, result: RevertResult, target: FullChange, project: str) -> None:
        result.event_logging_attempted = True
        try:
            self.registry.add_event(EventKind.REVERT, target, project)
        except QuitchError as e:
            result.logging_error = e
            self.console.print(f"Could not record the revert event: {e}", style="red", markup=False)
        else:
            result.event_recorded = True
