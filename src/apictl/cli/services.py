"""Collaborators handed to command hooks and handlers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from apictl.core.protocols import Authenticator, CredentialCache
from apictl.core.settings import EffectiveConfig
from apictl.infra.api_client import ApiClient
from apictl.infra.http_authenticator import HttpAuthenticator
from apictl.infra.token_cache import FileTokenCache


@dataclass
class Services:
    cache: CredentialCache
    authenticator: Authenticator
    cache_dir: Path | None = None
    transport: httpx.BaseTransport | None = None

    @classmethod
    def default(
        cls,
        cache_dir: Path,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> Services:
        """File-backed cache plus the HTTP authenticator."""
        return cls(
            cache=FileTokenCache(cache_dir),
            authenticator=HttpAuthenticator(transport=transport),
            cache_dir=cache_dir,
            transport=transport,
        )

    def api_client(self, config: EffectiveConfig, token: str | None) -> ApiClient:
        return ApiClient(config, token, transport=self.transport)
