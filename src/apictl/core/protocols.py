"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Collection
from pathlib import Path
from typing import Any, Protocol

from apictl.core.models import CachedToken
from apictl.core.settings import EffectiveConfig


class ConfigFileSystem(Protocol):
    """Contract for the filesystem access the config resolver needs."""

    def exists(self, path: Path) -> bool:
        """Return ``True`` when *path* is an existing regular file."""
        ...  # pragma: no cover

    def ensure_dir(self, path: Path) -> None:
        """Create directory *path* if absent.

        Raises
        ------
        ConfigDirectoryError
            When the directory cannot be created.
        """
        ...  # pragma: no cover

    def load(self, path: Path) -> dict[str, Any]:
        """Parse *path* as a YAML mapping.

        Raises
        ------
        ConfigParseError
            When the file cannot be read or is not a mapping.
        """
        ...  # pragma: no cover


class CredentialCache(Protocol):
    """Contract for credential persistence, keyed by method and target."""

    def get(self, method: str, target: str) -> CachedToken | None:
        """Return the usable cached token, or ``None`` on a miss."""
        ...  # pragma: no cover

    def put(self, token: CachedToken) -> None:
        """Store *token*, replacing any previous entry for its key.

        Raises
        ------
        CredentialCacheError
            When the entry cannot be persisted.
        """
        ...  # pragma: no cover

    def invalidate(self, method: str, target: str) -> None:
        """Forget the entry for ``(method, target)``; a no-op on a miss."""
        ...  # pragma: no cover

    def clear(self) -> int:
        """Forget every entry and return how many were removed."""
        ...  # pragma: no cover


class Authenticator(Protocol):
    """Contract for the remote authentication exchange."""

    methods: Collection[str]
    """Names of the auth methods this authenticator can perform."""

    def authenticate(self, method: str, config: EffectiveConfig) -> str:
        """Perform the exchange for *method* and return the new token.

        Implementations read their settings from *config* (typically
        the ``autoauth.<method>`` section) and must map all transport
        exceptions to :class:`~apictl.exceptions.ApictlError` subclasses.

        Raises
        ------
        UnsupportedAuthMethodError
            When *method* is not one of :attr:`methods`.
        AuthConfigurationError
            When required settings for *method* are missing.
        AuthExchangeError
            When the remote exchange fails.
        """
        ...  # pragma: no cover
