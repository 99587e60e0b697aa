"""
Settings resolution.

Each setting comes from, in order: a command-line flag, its environment
variable (handled by click), the ``[core]`` table of ``quitch.toml``, and
finally the built-in default.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .registry import Committer
from .secrets import SecretsProvider, resolve_secret
from .target import Target

DEFAULT_CONFIG_FILE = "quitch.toml"
DEFAULT_REGISTRY = "sqitch"
DEFAULT_PLAN_FILE = "sqitch.plan"


@dataclass(frozen=True)
class Settings:
    """Resolved settings for one invocation."""

    registry: str = DEFAULT_REGISTRY
    plan_file: Path = Path(DEFAULT_PLAN_FILE)
    target: str | None = None
    password_ref: str | None = None
    committer: Committer | None = None

    @property
    def top_dir(self) -> Path:
        """Directory holding the plan file; scripts are resolved against it."""
        return self.plan_file.parent

    def resolve_target(self, provider: SecretsProvider | None = None) -> Target:
        """
        Parse the target URL, filling in the password from its reference.

        Raises:
            ConfigError: if no target is configured or the password is unset
        """
        if not self.target:
            raise ConfigError("no target database; pass --target, set QUITCH_TARGET, or set core.target in quitch.toml")
        target = Target.parse(self.target)
        if self.password_ref and not target.has_password:
            target = target.with_password(resolve_secret(self.password_ref, provider))
        return target


def _string(table: dict[str, Any], key: str, source: Path) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{source}: {key} must be a string")
    return value


def load_config(path: Path) -> dict[str, Any]:
    """
    Load a TOML config file.

    Raises:
        ConfigError: if the file cannot be read or is not valid TOML
    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e

    for table in ("core", "user"):
        if not isinstance(data.get(table, {}), dict):
            raise ConfigError(f"{path}: [{table}] must be a table")
    return data


def resolve_settings(
    *,
    config_path: Path | None = None,
    registry: str | None = None,
    plan_file: Path | None = None,
    target: str | None = None,
) -> Settings:
    """
    Combine explicit values with the config file and defaults.

    Args:
        config_path: Explicit config file; when None, ./quitch.toml is used if present
        registry: Registry database name from the command line or environment
        plan_file: Plan file path from the command line or environment
        target: Target URL from the command line or environment
    """
    if config_path is None:
        default = Path(DEFAULT_CONFIG_FILE)
        config_path = default if default.is_file() else None
    data = load_config(config_path) if config_path is not None else {}

    core = data.get("core", {})
    user = data.get("user", {})
    source = config_path or Path(DEFAULT_CONFIG_FILE)

    configured_plan = _string(core, "plan_file", source)
    committer = None
    user_name = _string(user, "name", source)
    if user_name:
        committer = Committer(name=user_name, email=_string(user, "email", source) or "")

    return Settings(
        registry=registry or _string(core, "registry", source) or DEFAULT_REGISTRY,
        plan_file=plan_file or (Path(configured_plan) if configured_plan else Path(DEFAULT_PLAN_FILE)),
        target=target or _string(core, "target", source),
        password_ref=_string(core, "password", source),
        committer=committer,
    )
