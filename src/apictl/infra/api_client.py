"""httpx-backed client for the resource endpoints of the remote API.

Requests carry the bearer token obtained by the auto-auth gate (or the
``token`` setting) and the configured namespace in ``X-Namespace``.
httpx exceptions are caught here and re-raised as
:class:`~apictl.exceptions.ApiRequestError`.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from apictl.core.settings import EffectiveConfig
from apictl.exceptions import ApiRequestError
from apictl.infra.http_client import build_client

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin resource client: ``list``, ``get`` and ``delete``.

    Parameters
    ----------
    config:
        Provides ``api``, ``namespace`` and TLS settings.
    token:
        Bearer token; requests are sent anonymously when empty.
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: EffectiveConfig,
        token: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"X-Namespace": config.get_str("namespace") or "/"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client: httpx.Client = build_client(config, transport=transport, headers=headers)

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list(self, resource: str) -> Any:
        return self._request("GET", f"/{resource.strip('/')}")

    def get(self, resource: str, identifier: str) -> Any:
        return self._request("GET", f"/{resource.strip('/')}/{identifier}")

    def delete(self, resource: str, identifier: str) -> Any:
        return self._request("DELETE", f"/{resource.strip('/')}/{identifier}")

    # ------------------------------------------------------------------
    # Transport boundary
    # ------------------------------------------------------------------

    def _request(self, verb: str, path: str) -> Any:
        logger.debug("%s %s", verb, path)
        try:
            response = self._client.request(verb, path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            hint = None
            if status in (401, 403):
                hint = "Retry with --refresh-cached-token to obtain a new token."
            raise ApiRequestError(
                f"{verb} {path} failed with status {status}",
                hint=hint,
            ) from exc
        except httpx.HTTPError as exc:
            raise ApiRequestError(f"{verb} {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiRequestError(f"{verb} {path} returned invalid JSON") from exc
