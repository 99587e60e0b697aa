"""
Exception taxonomy for quitch.

Parse, connection and schema errors abort a run. Script and registry
errors raised during a revert are recorded on the revert result before
they reach the caller. Drift between the plan and the registry is a
report, not an exception (see ``quitch.reconcile.ReconciliationDrift``).
"""

from __future__ import annotations


class QuitchError(Exception):
    """Base class for errors reported to the operator."""


class ParseError(QuitchError, ValueError):
    """A plan document or change line is malformed."""

    def __init__(self, message: str, *, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class UnsupportedSyntaxError(ParseError):
    """The plan does not start with a supported syntax-version marker."""


class UnknownChangeError(QuitchError, LookupError):
    """A change name is not part of the plan."""


class ConfigError(QuitchError, ValueError):
    """The configuration file or a configured value is invalid."""


class TargetConnectionError(QuitchError):
    """The target or registry database cannot be reached."""


class SchemaBootstrapError(QuitchError):
    """The registry database or its tables could not be created."""


class ScriptNotFoundError(QuitchError, FileNotFoundError):
    """A change script is missing from the script store."""


class ScriptExecutionError(QuitchError):
    """A statement of a change script failed."""

    def __init__(self, statement_index: int, statement: str, cause: Exception):
        self.statement_index = statement_index
        self.statement = statement
        self.cause = cause
        super().__init__(f"statement {statement_index} failed: {cause}\n  {_abbreviate(statement)}")


class RegistryReadError(QuitchError):
    """The deployed changes could not be read from the registry."""


class RegistryWriteError(QuitchError):
    """A registry row could not be deleted or an event could not be appended."""


class InvariantViolation(QuitchError, RuntimeError):
    """Internal consistency check failed. Indicates a bug, never bad input."""


def _abbreviate(statement: str, limit: int = 200) -> str:
    text = " ".join(statement.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."
