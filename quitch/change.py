"""
Change records: one declared migration unit of a plan.

A change has two textual forms that must not be confused:

- the single-line plan form, ``name date planner # note``, where newlines
  in the note are escaped as the two characters ``\\n``;
- the canonical form, a small header block followed by the raw note,
  which is what gets hashed into the change identity (see
  ``quitch.identity``). The canonical form is never parsed back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from .errors import ParseError

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_IDENTITY_PATTERN = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>\s*$")
_RFC3339_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


def format_date(date: datetime) -> str:
    """Render a date as RFC 3339 UTC with second precision."""
    if date.tzinfo is not None:
        date = date.astimezone(timezone.utc)
    return date.strftime(DATE_FORMAT)


def parse_date(token: str) -> datetime:
    """Parse an RFC 3339 timestamp with an explicit offset, normalized to UTC.

    Other ISO 8601 forms (week dates, basic format, missing seconds,
    hour-only offsets) are rejected.
    """
    if not _RFC3339_PATTERN.match(token):
        raise ParseError(f"invalid date {token!r}, expected an RFC 3339 timestamp with offset")
    try:
        parsed = datetime.fromisoformat(token.upper())
    except ValueError as e:
        raise ParseError(f"invalid date {token!r}, expected an RFC 3339 timestamp") from e
    return parsed.astimezone(timezone.utc)


def split_identity(identity: str) -> tuple[str, str]:
    """Split ``"Name <email>"`` into its name and email parts.

    The email is empty when the string carries no ``<...>`` suffix.
    """
    match = _IDENTITY_PATTERN.match(identity)
    if match is None:
        return identity.strip(), ""
    return match.group("name").strip(), match.group("email").strip()


@dataclass(frozen=True)
class Change:
    """One named, timestamped, attributed migration declared in a plan."""

    name: str
    note: str
    date: datetime
    planner: str

    @classmethod
    def parse_line(cls, line: str) -> Change:
        """Parse a single plan line.

        Raises:
            ParseError: if a required space is missing or the date is invalid
        """
        name_end = line.find(" ")
        if name_end == -1:
            raise ParseError("missing space after name")
        name = line[:name_end]
        rest = line[name_end:].lstrip()

        date_end = rest.find(" ")
        if date_end == -1:
            raise ParseError("missing space after date")
        date = parse_date(rest[:date_end])
        rest = rest[date_end:].lstrip()

        planner, hash_sign, note = rest.partition("#")
        if hash_sign:
            planner = planner.strip()
            note = note.strip().replace("\\n", "\n")
        else:
            planner = rest.strip()
            note = ""

        return cls(name=name, note=note, date=date, planner=planner)

    def format_line(self) -> str:
        """Render the single-line plan form (newlines in the note escaped)."""
        note = self.note.replace("\n", "\\n")
        return f"{self.name} {format_date(self.date)} {self.planner} # {note}"

    def format(self, project: str, parent: str | None = None) -> str:
        """Render the canonical form used for display and hashing.

        The note is written verbatim and is not followed by a newline.
        """
        lines = [
            f"project {project}\n",
            f"change {self.name}\n",
        ]
        if parent:
            lines.append(f"parent {parent}\n")
        lines.append(f"planner {self.planner}\n")
        lines.append(f"date {format_date(self.date)}\n")
        lines.append("\n")
        lines.append(self.note)
        return "".join(lines)

    @property
    def planner_name(self) -> str:
        return split_identity(self.planner)[0]

    @property
    def planner_email(self) -> str:
        return split_identity(self.planner)[1]
