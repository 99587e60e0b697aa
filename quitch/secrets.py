"""
Secret references for database passwords.

``quitch.toml`` holds references such as ``env:APP_DB_PASSWORD`` rather
than passwords, so the file can be committed next to the plan. Only the
reference is ever printed or written to the audit log.
"""

from __future__ import annotations

import os
from typing import Mapping, Protocol

from .errors import ConfigError


class SecretsProvider(Protocol):
    """Resolves secret references it supports to values."""

    def supports(self, ref: str) -> bool:
        ...

    def get(self, ref: str) -> str | None:
        ...


class EnvSecretsProvider:
    """``env:VAR_NAME`` resolves to the environment variable VAR_NAME."""

    PREFIX = "env:"

    def __init__(self, environ: Mapping[str, str] | None = None):
        self.environ = os.environ if environ is None else environ

    def supports(self, ref: str) -> bool:
        return ref.startswith(self.PREFIX)

    def get(self, ref: str) -> str | None:
        if not self.supports(ref):
            return None
        return self.environ.get(ref[len(self.PREFIX) :])


def resolve_secret(ref: str, provider: SecretsProvider | None = None) -> str:
    """
    Resolve a required secret reference.

    Raises:
        ConfigError: if the reference is unsupported or has no value
    """
    provider = provider or EnvSecretsProvider()
    if not provider.supports(ref):
        raise ConfigError(f"unsupported secret reference {ref!r} (expected env:VAR_NAME)")
    value = provider.get(ref)
    if value is None:
        raise ConfigError(f"secret {ref!r} is not set")
    return value
