"""
Plan documents: the ordered declaration of a project's changes.

A plan file looks like::

    %syntax-version=1.0.0
    %project=quitch

    change_name 2024-03-07T03:19:34Z Ruslan Fadeev <github@kinrany.dev> # A description
    change_num2 2024-03-10T00:04:24Z Ruslan Fadeev <github@kinrany.dev> # Second change

Identities are not stored in the plan. They are recomputed on every run by
folding over the changes in order (see ``Plan.full_changes``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from rich.console import Console

from .change import Change
from .errors import ParseError, UnknownChangeError, UnsupportedSyntaxError
from .identity import change_id

SYNTAX_VERSION_LINE = "%syntax-version=1.0.0"


@dataclass(frozen=True)
class FullChange:
    """A change together with its computed identity and its parent's identity."""

    change: Change
    id: str
    parent: str | None = None

    @property
    def name(self) -> str:
        return self.change.name


@dataclass(frozen=True)
class Plan:
    """Parsed plan: project name, header metadata and changes in plan order."""

    project: str
    changes: tuple[Change, ...] = ()
    meta: dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def parse(cls, text: str) -> Plan:
        """
        Parse a plan document.

        There are three kinds of lines: meta lines starting with ``%``,
        change lines, and blank lines (ignored).

        Raises:
            UnsupportedSyntaxError: if the first non-blank line is not the
                syntax-version marker
            ParseError: on the first malformed change line
        """
        lines = text.splitlines()
        first = next((line for line in lines if line.strip()), None)
        if first != SYNTAX_VERSION_LINE:
            raise UnsupportedSyntaxError(f"unsupported plan syntax, expected {SYNTAX_VERSION_LINE!r} first")

        # Duplicate keys: the last value wins, the first position is kept.
        meta: dict[str, str] = {}
        changes: list[Change] = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            if line.startswith("%"):
                key, _, value = line[1:].partition("=")
                meta[key] = value
                continue
            try:
                changes.append(Change.parse_line(line))
            except ParseError as e:
                raise ParseError(str(e), line_number=line_number) from e

        return cls(project=meta.get("project", ""), changes=tuple(changes), meta=meta)

    def is_empty(self) -> bool:
        return not self.changes

    def format(self) -> str:
        """Render the plan as a document accepted by ``Plan.parse``."""
        lines = [SYNTAX_VERSION_LINE, f"%project={self.project}", ""]
        lines.extend(change.format_line() for change in self.changes)
        return "\n".join(lines) + "\n"

    def full_changes(self) -> Iterator[FullChange]:
        """
        Yield every change with its identity and parent identity.

        Each call starts a new left-to-right fold. An identity depends on
        all identities before it, so callers that need random access should
        materialize the sequence once.
        """
        parent: str | None = None
        for change in self.changes:
            current = change_id(self.project, change, parent)
            yield FullChange(change=change, id=current, parent=parent)
            parent = current

    def find_change(self, name: str) -> FullChange | None:
        """Return the first change with this name, or None."""
        return next((c for c in self.full_changes() if c.name == name), None)

    def show_change(self, name: str) -> str:
        """Canonical form of a named change, as hashed into its identity."""
        full = self.find_change(name)
        if full is None:
            raise UnknownChangeError(f"unknown change {name!r}")
        return full.change.format(self.project, full.parent)


def load_plan(path: Path, console: Console | None = None) -> Plan:
    """Read and parse a plan file, warning when it declares no changes."""
    console = console or Console(stderr=True)
    console.print(f"Using plan file {path}", style="dim", markup=False)
    plan = Plan.parse(path.read_text(encoding="utf-8"))
    if plan.is_empty():
        console.print("Warning: the plan is empty", style="yellow")
    return plan
