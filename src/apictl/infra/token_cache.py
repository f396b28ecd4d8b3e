"""File-backed implementation of :class:`~apictl.core.protocols.CredentialCache`.

Each ``(method, target)`` pair maps to one JSON document under the
cache directory.  Writes go to a temporary file that replaces the entry
atomically, so concurrent invocations never observe a half-written
token; beyond that, consistency across processes is best-effort.

Rules
-----
* Unreadable, corrupted or expired entries read as a miss.
* Write failures raise :class:`~apictl.exceptions.CredentialCacheError`.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from apictl.core.models import CachedToken
from apictl.exceptions import CredentialCacheError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class FileTokenCache:
    """Concrete :class:`CredentialCache` storing one JSON file per entry.

    Usage::

        cache = FileTokenCache(Path("~/.config/apictl/cache").expanduser())
        cache.put(CachedToken("ldap", "https://api", "eyJ..."))
        cache.get("ldap", "https://api")
    """

    _PREFIX = "token-"

    def __init__(self, directory: Path) -> None:
        self.directory: Path = Path(directory)

    # ------------------------------------------------------------------
    # Keying
    # ------------------------------------------------------------------

    def entry_path(self, method: str, target: str) -> Path:
        """Return the file holding the entry for ``(method, target)``."""
        safe_method = _UNSAFE_CHARS.sub("_", method)
        digest = hashlib.sha256(target.encode("utf-8")).hexdigest()[:16]
        return self.directory / f"{self._PREFIX}{safe_method}-{digest}.json"

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def get(self, method: str, target: str) -> CachedToken | None:
        path = self.entry_path(method, target)
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable cached token %s: %s", path, exc)
            return None

        token = self._decode(raw)
        if token is None or token.method != method or token.target != target:
            logger.warning("ignoring malformed cached token %s", path)
            return None
        if token.is_expired():
            logger.debug("cached token for %s@%s has expired", method, target)
            return None
        return token

    def put(self, token: CachedToken) -> None:
        path = self.entry_path(token.method, token.target)
        payload = json.dumps(self._encode(token), indent=2)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CredentialCacheError(
                f"unable to cache token in {self.directory}: {exc}",
            ) from exc
        logger.debug("cached token for %s@%s in %s", token.method, token.target, path)

    def invalidate(self, method: str, target: str) -> None:
        path = self.entry_path(method, target)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise CredentialCacheError(f"unable to remove cached token {path}: {exc}") from exc

    def clear(self) -> int:
        if not self.directory.is_dir():
            return 0
        removed = 0
        for path in self.directory.glob(f"{self._PREFIX}*.json"):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise CredentialCacheError(
                    f"unable to remove cached token {path}: {exc}",
                ) from exc
            removed += 1
        return removed

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(token: CachedToken) -> dict[str, Any]:
        return {
            "method": token.method,
            "target": token.target,
            "token": token.token,
            "issued_at": token.issued_at.isoformat() if token.issued_at else None,
        }

    @staticmethod
    def _decode(raw: Any) -> CachedToken | None:
        if not isinstance(raw, dict):
            return None
        method, target, value = raw.get("method"), raw.get("target"), raw.get("token")
        if not all(isinstance(item, str) and item for item in (method, target, value)):
            return None
        issued_at: datetime | None = None
        if isinstance(raw.get("issued_at"), str):
            try:
                issued_at = datetime.fromisoformat(raw["issued_at"])
            except ValueError:
                issued_at = None
        return CachedToken(method=method, target=target, token=value, issued_at=issued_at)
