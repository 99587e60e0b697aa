"""
Reconciliation of the plan chain against the registry.

Each identity hashes in its parent's identity, so a plain membership test
is enough to find where the registry and the plan part ways: any earlier
disagreement already changes every later identity. The first plan change
whose identity is not in the registry is the divergence point, i.e. the
first undeployed change.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from rich.console import Console

from .plan import FullChange, Plan
from .registry import Registry


@dataclass(frozen=True)
class ReconciliationDrift:
    """Registry identities that are not part of the plan prefix.

    This is a warning: the run continues.
    """

    orphans: dict[str, str] = field(default_factory=dict)

    def message(self) -> str:
        lines = [f"registry holds {len(self.orphans)} change(s) not found in the plan:"]
        for change_id, name in self.orphans.items():
            lines.append(f"  {change_id} {name}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of comparing the plan chain with the registry."""

    first_undeployed: FullChange | None
    deployed: tuple[FullChange, ...] = ()
    drift: ReconciliationDrift | None = None

    @property
    def fully_deployed(self) -> bool:
        return self.first_undeployed is None


def reconcile(registry: Registry, plan: Plan) -> Reconciliation:
    """
    Walk the plan chain until the first identity missing from the registry.

    Args:
        registry: Registry to read the deployed identities from (read once)
        plan: Parsed plan

    Returns:
        Reconciliation with the divergence point, the matched prefix, and
        any registry identities left unmatched at that point
    """
    remaining = dict(registry.fetch_change_ids())
    deployed: list[FullChange] = []
    first_undeployed: FullChange | None = None

    for full in plan.full_changes():
        if full.id not in remaining:
            first_undeployed = full
            break
        del remaining[full.id]
        deployed.append(full)

    drift = ReconciliationDrift(orphans=remaining) if remaining else None
    return Reconciliation(first_undeployed=first_undeployed, deployed=tuple(deployed), drift=drift)


def report_drift(reconciliation: Reconciliation, console: Console) -> None:
    """Print drift as a yellow warning. Drift never stops the run."""
    if reconciliation.drift is not None:
        console.print(f"Warning: {reconciliation.drift.message()}", style="yellow", markup=False, highlight=False)


def validate_against_plan(
    registry: Registry,
    plan: Plan,
    console: Console | None = None,
) -> FullChange | None:
    """Return the first undeployed change (None when fully deployed)."""
    result = reconcile(registry, plan)
    report_drift(result, console or Console(stderr=True))
    return result.first_undeployed
