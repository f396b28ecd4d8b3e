"""Auto-auth gate — obtains a credential before an API command runs.

The gate depends on a :class:`~apictl.core.protocols.CredentialCache`
and an :class:`~apictl.core.protocols.Authenticator` injected at
construction time, and reads its decisions from the
:class:`~apictl.core.settings.EffectiveConfig`.

Decision tree
-------------
1. Method = override, else ``autoauth.enable``; neither → no-op.
2. Unknown method → :class:`~apictl.exceptions.AutoAuthError`.
3. Forced refresh → invalidate the cache entry before reading it.
4. Cache hit → done, no exchange.
5. Cache miss → exchange, store, done.

Failures in step 5 are wrapped in :class:`~apictl.exceptions.AutoAuthError`
and never retried.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apictl.core.models import CachedToken
from apictl.core.protocols import Authenticator, CredentialCache
from apictl.core.settings import EffectiveConfig
from apictl.exceptions import ApictlError, AutoAuthError
from apictl.utils.constants import AUTOAUTH_METHOD_KEY

logger = logging.getLogger(__name__)


def resolve_method(override: str | None, config: EffectiveConfig) -> str:
    """Return the effective auth method, or ``""`` when auto-auth is off.

    A non-empty *override* replaces the configured method entirely.
    """
    if override and override.strip():
        return override.strip()
    return config.get_str(AUTOAUTH_METHOD_KEY).strip()


def target_of(config: EffectiveConfig) -> str:
    """Return the API endpoint credentials are scoped to."""
    return config.get_str("api").rstrip("/")


class AutoAuthGate:
    """Pre-run gate guaranteeing a credential for API-facing commands.

    Parameters
    ----------
    config:
        The invocation's configuration, with flags already bound.
    cache:
        Any object satisfying the :class:`CredentialCache` protocol.
    authenticator:
        Any object satisfying the :class:`Authenticator` protocol.
    """

    def __init__(
        self,
        config: EffectiveConfig,
        cache: CredentialCache,
        authenticator: Authenticator,
    ) -> None:
        self._config = config
        self._cache = cache
        self._authenticator = authenticator

    def ensure_authenticated(
        self,
        method_override: str | None = None,
        force_refresh: bool = False,
    ) -> CachedToken | None:
        """Return a usable credential, or ``None`` when auto-auth is disabled.

        Raises
        ------
        AutoAuthError
            If the method is unsupported, or the cache or the exchange fails.
        """
        method = resolve_method(method_override, self._config)
        if not method:
            logger.debug("auto-auth disabled")
            return None

        if method not in self._authenticator.methods:
            supported = ", ".join(sorted(self._authenticator.methods))
            raise AutoAuthError(
                f"auto auth error: unsupported auth method '{method}'",
                hint=f"Supported methods: {supported}.",
            )

        target = target_of(self._config)

        try:
            if force_refresh:
                logger.debug("invalidating cached token for %s@%s", method, target)
                self._cache.invalidate(method, target)

            cached = self._cache.get(method, target)
            if cached is not None:
                logger.debug("using cached token for %s@%s", method, target)
                return cached

            logger.info("authenticating with method %s against %s", method, target)
            raw = self._authenticator.authenticate(method, self._config)
            token = CachedToken(
                method=method,
                target=target,
                token=raw,
                issued_at=datetime.now(timezone.utc),
            )
            self._cache.put(token)
        except ApictlError as exc:
            raise AutoAuthError(f"auto auth error: {exc}", hint=exc.hint) from exc
        except Exception as exc:
            raise AutoAuthError(f"auto auth error: unexpected failure: {exc}") from exc

        return token
