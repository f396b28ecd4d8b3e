"""Builder for the ``httpx.Client`` shared by every remote collaborator.

Centralises base URL, timeouts and TLS settings so the authenticator and
the API client talk to the server the same way.  Tests inject an
``httpx.MockTransport`` through *transport*.
"""

from __future__ import annotations

import ssl

import httpx

from apictl.core.settings import EffectiveConfig
from apictl.exceptions import AuthConfigurationError
from apictl.version import __version__


def build_ssl_context(
    config: EffectiveConfig,
    *,
    client_cert: tuple[str, str] | None = None,
) -> ssl.SSLContext:
    """Return the TLS context described by ``api-cacert``/``api-skip-verify``.

    Raises
    ------
    AuthConfigurationError
        When a CA bundle or client certificate cannot be loaded.
    """
    cacert = config.get_str("api-cacert") or None
    try:
        context = ssl.create_default_context(cafile=cacert)
        if config.get_bool("api-skip-verify"):
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if client_cert is not None:
            context.load_cert_chain(*client_cert)
    except (OSError, ssl.SSLError) as exc:
        raise AuthConfigurationError(f"unable to load TLS material: {exc}") from exc
    return context


def build_client(
    config: EffectiveConfig,
    *,
    transport: httpx.BaseTransport | None = None,
    client_cert: tuple[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Client:
    """Create an ``httpx.Client`` bound to the configured ``api`` URL."""
    merged: dict[str, str] = {
        "User-Agent": f"apictl/{__version__}",
        "Accept": "application/json",
    }
    if headers:
        merged.update(headers)

    timeout = httpx.Timeout(float(config.get("api-timeout") or 30))
    base_url = config.get_str("api").rstrip("/")

    if transport is not None:
        return httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=merged,
            transport=transport,
        )
    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        headers=merged,
        verify=build_ssl_context(config, client_cert=client_cert),
    )
