"""httpx-backed implementation of :class:`~apictl.core.protocols.Authenticator`.

Tokens are issued by ``POST <api>/issue``.  Each supported method reads
its settings from the ``autoauth.<method>`` config section:

* ``ldap`` / ``http`` — ``user``, ``pass``, ``source-namespace``,
  ``source-name``; credentials travel in the request body.
* ``mtls`` — ``cert``, ``key``, ``source-namespace``, ``source-name``;
  the client certificate is presented during the TLS handshake.

``autoauth.validity`` and ``autoauth.audience`` apply to every method.
All httpx exceptions are caught here and re-raised as typed
:class:`~apictl.exceptions.ApictlError` subclasses.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from apictl.core.settings import EffectiveConfig
from apictl.exceptions import (
    AuthConfigurationError,
    AuthExchangeError,
    UnsupportedAuthMethodError,
)
from apictl.infra.http_client import build_client

logger = logging.getLogger(__name__)


class HttpAuthenticator:
    """Concrete :class:`Authenticator` talking to the issue endpoint.

    Parameters
    ----------
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    _SOURCE_TYPES: dict[str, str] = {
        "ldap": "LDAP",
        "http": "HTTP",
        "mtls": "MTLS",
    }

    _PASSWORD_METHODS: frozenset[str] = frozenset({"ldap", "http"})

    methods: tuple[str, ...] = tuple(_SOURCE_TYPES)

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def authenticate(self, method: str, config: EffectiveConfig) -> str:
        if method not in self._SOURCE_TYPES:
            raise UnsupportedAuthMethodError(
                f"unsupported auth method '{method}'",
                hint=f"Supported methods: {', '.join(self.methods)}.",
            )

        body = self.build_request(method, config)
        client_cert = None
        if method == "mtls":
            client_cert = (
                self._require(config, method, "cert"),
                self._require(config, method, "key"),
            )

        logger.debug("issuing token via %s source %s", method, body.get("sourceName"))
        with build_client(config, transport=self._transport, client_cert=client_cert) as client:
            try:
                response = client.post("/issue", json=body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise AuthExchangeError(
                    f"{method} authentication rejected "
                    f"({exc.response.status_code}): {self._detail(exc.response)}",
                    hint="Check the credentials of the autoauth section.",
                ) from exc
            except httpx.HTTPError as exc:
                raise AuthExchangeError(
                    f"unable to reach {config.get_str('api')}: {exc}",
                ) from exc

        return self._extract_token(response)

    # ------------------------------------------------------------------
    # Request construction (pure)
    # ------------------------------------------------------------------

    def build_request(self, method: str, config: EffectiveConfig) -> dict[str, Any]:
        """Return the JSON body of the issue request for *method*.

        Raises
        ------
        AuthConfigurationError
            When a required setting is missing.
        """
        source_type = self._SOURCE_TYPES[method]
        body: dict[str, Any] = {
            "sourceType": source_type,
            "sourceNamespace": self._require(config, method, "source-namespace"),
            "sourceName": self._require(config, method, "source-name"),
            "validity": config.get_str("autoauth.validity") or "24h",
        }
        audience = config.get_list("autoauth.audience")
        if audience:
            body["audience"] = audience
        if method in self._PASSWORD_METHODS:
            body[f"input{source_type}"] = {
                "username": self._require(config, method, "user"),
                "password": self._require(config, method, "pass"),
            }
        return body

    @staticmethod
    def _require(config: EffectiveConfig, method: str, name: str) -> str:
        key = f"autoauth.{method}.{name}"
        value = config.get_str(key)
        if not value:
            raise AuthConfigurationError(
                f"missing '{key}' for {method} authentication",
                hint="Set it in the config file or via the matching APICTL_ variable.",
            )
        return value

    # ------------------------------------------------------------------
    # Response handling
    # ------------------------------------------------------------------

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            payload: Any = response.json()
        except ValueError:
            return response.text.strip() or response.reason_phrase
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            payload = payload[0]
        if isinstance(payload, dict):
            for field in ("description", "message", "title"):
                if payload.get(field):
                    return str(payload[field])
        return response.reason_phrase

    @staticmethod
    def _extract_token(response: httpx.Response) -> str:
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise AuthExchangeError("issue endpoint returned invalid JSON") from exc
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthExchangeError("issue endpoint returned no token")
        return token
