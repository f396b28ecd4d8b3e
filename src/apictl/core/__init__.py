"""Core / service layer — configuration resolution and the auto-auth gate.

Rules
-----
* No ``print()`` calls.
* No filesystem or network I/O.
* No imports from ``cli`` or ``infra``.
* Collaborators are reached only through :mod:`apictl.core.protocols`.
"""

from apictl.core.auto_auth import AutoAuthGate, resolve_method
from apictl.core.commands import (
    ArgumentSpec,
    CommandContext,
    CommandNode,
    FlagSpec,
    bind_flags,
    execute,
)
from apictl.core.config_resolver import ConfigResolver
from apictl.core.models import CachedToken, ConfigLocation, LocationKind
from apictl.core.protocols import Authenticator, ConfigFileSystem, CredentialCache
from apictl.core.settings import EffectiveConfig

__all__: list[str] = [
    "ArgumentSpec",
    "Authenticator",
    "AutoAuthGate",
    "CachedToken",
    "CommandContext",
    "CommandNode",
    "ConfigFileSystem",
    "ConfigLocation",
    "ConfigResolver",
    "CredentialCache",
    "EffectiveConfig",
    "FlagSpec",
    "LocationKind",
    "bind_flags",
    "execute",
    "resolve_method",
]
