"""
Change scripts on disk and statement splitting.

Scripts live next to the plan file, one file per change and kind::

    sqitch.plan
    deploy/<change>.sql
    revert/<change>.sql
    verify/<change>.sql
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Literal

from .errors import ScriptNotFoundError

ScriptKind = Literal["deploy", "revert", "verify"]


class ScriptStore:
    """Locates and reads change scripts relative to the plan directory."""

    def __init__(self, top_dir: Path):
        self.top_dir = top_dir

    def path(self, kind: ScriptKind, change_name: str) -> Path:
        return self.top_dir / kind / f"{change_name}.sql"

    def read(self, kind: ScriptKind, change_name: str) -> str:
        """
        Read a change script.

        Raises:
            ScriptNotFoundError: if the script file does not exist
        """
        path = self.path(kind, change_name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ScriptNotFoundError(f"{kind} script not found: {path}") from e


def iter_statements(sql: str) -> Iterator[str]:
    """
    Split a SQL script into statements, lazily.

    Statements end at a ``;`` outside of quotes and comments. Quoted text
    ('...', "...", `...`, with backslash escapes) and comments (``--``,
    ``#`` to end of line, ``/* */``) never end a statement. Fragments made
    only of whitespace and comments are skipped. MySQL ``DELIMITER``
    directives are not supported.
    """
    start = 0
    i = 0
    n = len(sql)
    has_code = False

    while i < n:
        ch = sql[i]

        if ch in ("'", '"', "`"):
            has_code = True
            i += 1
            while i < n and sql[i] != ch:
                if sql[i] == "\\" and ch != "`":
                    i += 1
                i += 1
            i += 1
            continue

        if (ch == "-" and sql.startswith("--", i)) or ch == "#":
            end = sql.find("\n", i)
            i = n if end == -1 else end + 1
            continue

        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        if ch == ";":
            if has_code:
                yield sql[start:i].strip()
            start = i + 1
            has_code = False
        elif not ch.isspace():
            has_code = True
        i += 1

    if has_code:
        yield sql[start:].strip()


def split_statements(sql: str) -> list[str]:
    """Materialized ``iter_statements``."""
    return list(iter_statements(sql))
