"""Domain models for apictl.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access and pure derivations.  They carry zero I/O
and no dependencies on external packages.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


# ---------------------------------------------------------------------------
# Config location
# ---------------------------------------------------------------------------

class LocationKind(str, Enum):
    """How the authoritative config file was designated."""

    EXPLICIT_PATH = "explicit-path"
    PROFILE = "profile"


@dataclass(frozen=True, slots=True)
class ConfigLocation:
    """The single config source active for this run."""

    kind: LocationKind

    target: str
    """File path for :attr:`LocationKind.EXPLICIT_PATH`, else the profile name."""

    origin: str = "default"
    """Where the value came from: ``"flag"``, ``"env"`` or ``"default"``."""

    @classmethod
    def explicit(cls, path: str | Path, origin: str) -> ConfigLocation:
        return cls(kind=LocationKind.EXPLICIT_PATH, target=str(path), origin=origin)

    @classmethod
    def named(cls, profile: str, origin: str) -> ConfigLocation:
        return cls(kind=LocationKind.PROFILE, target=profile, origin=origin)

    @property
    def path(self) -> Path | None:
        """Explicit file path, or ``None`` for a profile lookup."""
        if self.kind is LocationKind.EXPLICIT_PATH:
            return Path(self.target)
        return None

    @property
    def profile(self) -> str | None:
        """Profile name to search for, or ``None`` for an explicit path."""
        if self.kind is LocationKind.PROFILE:
            return self.target
        return None


# ---------------------------------------------------------------------------
# Cached credential
# ---------------------------------------------------------------------------

def _jwt_expiry(token: str) -> datetime | None:
    """Return the ``exp`` claim of a JWT, or ``None`` for opaque tokens.

    The signature is not verified; the claim is only used to avoid
    sending a token the server will reject anyway.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, ValueError):
        return None
    exp = claims.get("exp") if isinstance(claims, dict) else None
    if not isinstance(exp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        # Out of the platform range, or NaN.
        return None


@dataclass(frozen=True, slots=True)
class CachedToken:
    """An opaque credential obtained for ``(method, target)``."""

    method: str
    """Auth method that produced the token (e.g. ``ldap``)."""

    target: str
    """API endpoint the token was issued by."""

    token: str

    issued_at: datetime | None = None

    @property
    def expires_at(self) -> datetime | None:
        return _jwt_expiry(self.token)

    def is_expired(self, now: datetime | None = None) -> bool:
        expiry = self.expires_at
        if expiry is None:
            return False
        return (now or datetime.now(timezone.utc)) >= expiry
