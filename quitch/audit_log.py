"""
Local audit log of operations run by quitch.

The registry's ``events`` table is the audit trail of the target database.
This log is the operator-side counterpart: one JSON line per effectful
command, written next to the plan in ``.quitch/audit.log``, including
failed attempts.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    operation: str
    outcome: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "outcome": self.outcome,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            outcome=data.get("outcome", ""),
            metadata=data.get("metadata", {}),
        )


def get_audit_log_path(top_dir: Path) -> Path:
    """Get the path to the audit log file."""
    return top_dir / ".quitch" / "audit.log"


def log_operation(
    top_dir: Path,
    operation: str,
    outcome: str,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Args:
        top_dir: Directory holding the plan file
        operation: Name of the operation (e.g., "revert")
        outcome: "success" or "failure"
        metadata: Additional context (change, target, error text)

    Returns:
        The created audit entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        outcome=outcome,
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(top_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")

    return entry


def read_audit_log(top_dir: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Read audit entries, oldest first; malformed lines are skipped."""
    log_path = get_audit_log_path(top_dir)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(AuditEntry.from_dict(json.loads(line)))
                except json.JSONDecodeError:
                    continue

    if last_n is not None:
        return entries[-last_n:]
    return entries
