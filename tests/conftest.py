"""Shared pytest fixtures and configuration for the apictl test suite.

Guidelines
----------
* No internet access in any test — HTTP goes through ``httpx.MockTransport``.
* Every filesystem location (home, system config dirs) lives in ``tmp_path``.
* Tests must not depend on the caller's environment: ``environ`` fixtures
  are plain dicts handed to :func:`apictl.cli.app.main`.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest
import yaml


def make_jwt(claims: dict[str, Any]) -> str:
    """Build an unsigned JWT carrying *claims*."""

    def _segment(data: dict[str, Any]) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    return f"{_segment({'alg': 'none', 'typ': 'JWT'})}.{_segment(claims)}.sig"


class FakeApiServer:
    """Callable handler for ``httpx.MockTransport`` recording every request."""

    def __init__(self, *, issue_status: int = 200) -> None:
        self.issue_status = issue_status
        self.requests: list[httpx.Request] = []
        self.issued = 0

    @property
    def issue_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/issue"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/issue":
            if self.issue_status != 200:
                return httpx.Response(
                    self.issue_status,
                    json=[{"title": "Unauthorized", "description": "bad credentials"}],
                )
            self.issued += 1
            return httpx.Response(200, json={"token": f"issued-token-{self.issued}"})
        return httpx.Response(200, json=[{"ID": "1", "name": "first"}])


@pytest.fixture(autouse=True)
def _reset_apictl_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("apictl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def user_dir(home: Path) -> Path:
    return home / ".config" / "apictl"


@pytest.fixture
def system_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> tuple[Path, Path]:
    """Redirect the system search directories into ``tmp_path``."""
    local = tmp_path / "usr" / "local" / "etc" / "apictl"
    system = tmp_path / "etc" / "apictl"
    local.mkdir(parents=True)
    system.mkdir(parents=True)
    monkeypatch.setattr("apictl.infra.paths.SYSTEM_CONFIG_DIRS", (local, system))
    return local, system


@pytest.fixture
def environ(home: Path, system_dirs: tuple[Path, Path]) -> dict[str, str]:
    return {"HOME": str(home)}


@pytest.fixture
def write_config() -> Callable[[Path, dict[str, Any]], Path]:
    def _write(path: Path, data: dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def server() -> FakeApiServer:
    return FakeApiServer()


@pytest.fixture
def transport(server: FakeApiServer) -> httpx.MockTransport:
    return httpx.MockTransport(server)
