"""End-to-end tests for the invocation pipeline (cli/app.py).

Each test runs :func:`main` against a temporary home directory,
temporary system config directories and an ``httpx.MockTransport``
standing in for the remote API.

Coverage:
* Config bootstrap from profiles, explicit paths and environment.
* Auto-auth gate: exchange, cache reuse, forced refresh, disabled.
* Commands outside ``api`` never authenticate.
* Fatal configuration errors abort before any command runs.
* The ``cli()`` error boundary.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import httpx
import pytest

from apictl.cli import exit_codes
from apictl.cli.app import cli, main
from apictl.exceptions import (
    AutoAuthError,
    ConfigFileNotFoundError,
    ConfigProfileNotFoundError,
    ConfigValueError,
    UsageError,
)
from apictl.infra.token_cache import FileTokenCache
from conftest import FakeApiServer

LDAP = {
    "user": "bob",
    "pass": "s3cret",
    "source-namespace": "/acme",
    "source-name": "corp-ldap",
}


def _profile(method: str = "ldap", api: str = "https://api.test") -> dict[str, object]:
    return {"api": api, "namespace": "/acme", "autoauth": {"enable": method, "ldap": LDAP}}


# ---------------------------------------------------------------------------
# Auto-auth through the api subtree
# ---------------------------------------------------------------------------

class TestAutoAuth:
    def test_staging_profile_with_refresh(
        self,
        environ: dict[str, str],
        system_dirs: tuple[Path, Path],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_config(system_dirs[1] / "staging.yaml", _profile())

        code = main(
            ["--config-name", "staging", "--refresh-cached-token", "api", "list", "apps"],
            environ=environ,
            transport=transport,
        )

        assert code == exit_codes.SUCCESS
        assert len(server.issue_requests) == 1
        resource = [r for r in server.requests if r.url.path == "/apps"]
        assert resource[0].headers["Authorization"] == "Bearer issued-token-1"
        assert json.loads(capsys.readouterr().out) == [{"ID": "1", "name": "first"}]

        cached = FileTokenCache(user_dir / "cache").get("ldap", "https://api.test")
        assert cached is not None
        assert cached.token == "issued-token-1"

    def test_cached_token_reused(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        main(["api", "list", "apps"], environ=environ, transport=transport)
        main(["api", "get", "apps", "1"], environ=environ, transport=transport)

        assert len(server.issue_requests) == 1
        tokens = {r.headers["Authorization"] for r in server.requests if r.url.path != "/issue"}
        assert tokens == {"Bearer issued-token-1"}

    def test_refresh_forces_new_exchange(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        main(["api", "list", "apps"], environ=environ, transport=transport)
        main(["api", "list", "apps", "--refresh-cached-token"], environ=environ, transport=transport)

        assert len(server.issue_requests) == 2

    def test_refresh_from_environment(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        main(["api", "list", "apps"], environ=environ, transport=transport)

        env = {**environ, "APICTL_REFRESH_CACHED_TOKEN": "true"}
        main(["api", "list", "apps"], environ=env, transport=transport)

        assert len(server.issue_requests) == 2

    def test_disabled_auto_auth_still_runs_body(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", {"api": "https://api.test", "token": "static"})

        code = main(["api", "list", "apps"], environ=environ, transport=transport)

        assert code == exit_codes.SUCCESS
        assert server.issue_requests == []
        assert server.requests[0].headers["Authorization"] == "Bearer static"

    def test_method_override_flag(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        profile = _profile(method="")
        profile["autoauth"]["http"] = LDAP  # type: ignore[index]
        write_config(user_dir / "default.yaml", profile)

        main(
            ["--auto-auth-method", "http", "api", "list", "apps"],
            environ=environ,
            transport=transport,
        )

        body = json.loads(server.issue_requests[0].content)
        assert body["sourceType"] == "HTTP"

    def test_exchange_failure_aborts_body(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        server = FakeApiServer(issue_status=401)

        with pytest.raises(AutoAuthError, match="^auto auth error: "):
            main(["api", "list", "apps"], environ=environ, transport=httpx.MockTransport(server))

        assert [r.url.path for r in server.requests] == ["/issue"]

    def test_unsupported_method_aborts(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile(method="kerberos"))

        with pytest.raises(AutoAuthError, match="unsupported auth method"):
            main(["api", "list", "apps"], environ=environ, transport=transport)
        assert server.requests == []


# ---------------------------------------------------------------------------
# Ungated commands
# ---------------------------------------------------------------------------

class TestUngated:
    @pytest.mark.parametrize(
        "argv",
        [
            ["auth", "check"],
            ["auth", "clear"],
            ["completion", "bash"],
            ["doctor"],
        ],
    )
    def test_never_authenticate(
        self,
        argv: list[str],
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        main([*argv, "--refresh-cached-token"], environ=environ, transport=transport)

        assert server.requests == []

    def test_login_then_check(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        assert main(["auth", "login"], environ=environ, transport=transport) == 0
        assert capsys.readouterr().out.strip() == "issued-token-1"

        assert main(["auth", "check"], environ=environ, transport=transport) == 0
        assert "method:  ldap" in capsys.readouterr().out
        assert len(server.issue_requests) == 1

    def test_check_without_token(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        code = main(["auth", "check"], environ=environ)

        assert code == exit_codes.GENERAL_ERROR
        assert "no valid cached token" in capsys.readouterr().err

    def test_clear_all(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        main(["auth", "login"], environ=environ, transport=transport)

        assert main(["auth", "clear", "--all"], environ=environ) == 0
        assert FileTokenCache(user_dir / "cache").get("ldap", "https://api.test") is None


# ---------------------------------------------------------------------------
# Configuration bootstrap
# ---------------------------------------------------------------------------

class TestBootstrap:
    def test_no_args_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([], environ={}) == exit_codes.SUCCESS
        assert "usage: apictl" in capsys.readouterr().out

    def test_group_prints_its_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["api"], environ={}) == exit_codes.SUCCESS
        assert "usage: apictl api" in capsys.readouterr().out

    def test_missing_default_profile_is_fatal(
        self, environ: dict[str, str], server: FakeApiServer, transport,
    ) -> None:
        with pytest.raises(ConfigProfileNotFoundError):
            main(["api", "list", "apps"], environ=environ, transport=transport)
        assert server.requests == []

    def test_missing_explicit_file_is_fatal(
        self, environ: dict[str, str], user_dir: Path, write_config, tmp_path: Path,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        with pytest.raises(ConfigFileNotFoundError):
            main(["--config", str(tmp_path / "nope.yaml"), "doctor"], environ=environ)

    def test_explicit_env_path_used(
        self,
        environ: dict[str, str],
        write_config,
        tmp_path: Path,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        path = write_config(tmp_path / "elsewhere.yaml", _profile(api="https://other.test"))
        env = {**environ, "APICTL_CONFIG": str(path)}

        main(["api", "list", "apps"], environ=env, transport=transport)

        assert server.requests[-1].url.host == "other.test"

    def test_environment_overrides_file(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        env = {**environ, "APICTL_NAMESPACE": "/from-env"}

        main(["api", "list", "apps"], environ=env, transport=transport)

        assert server.requests[-1].headers["X-Namespace"] == "/from-env"

    def test_flag_overrides_environment(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        server: FakeApiServer,
        transport: httpx.MockTransport,
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())
        env = {**environ, "APICTL_NAMESPACE": "/from-env"}

        main(["api", "list", "apps", "--namespace", "/from-flag"], environ=env, transport=transport)

        assert server.requests[-1].headers["X-Namespace"] == "/from-flag"

    def test_invalid_log_level_from_environment(self, environ: dict[str, str]) -> None:
        env = {**environ, "APICTL_LOG_LEVEL": "chatty"}
        with pytest.raises(ConfigValueError, match="invalid value for log-level"):
            main(["doctor"], environ=env)

    def test_debug_logging_to_stderr(
        self,
        environ: dict[str, str],
        user_dir: Path,
        write_config,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        write_config(user_dir / "default.yaml", _profile())

        main(["--log-level", "debug", "completion", "fish"], environ=environ)

        assert logging.getLogger("apictl").level == logging.DEBUG
        assert "running apictl completion fish" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestCliBoundary:
    def test_config_error_exits_one(
        self,
        monkeypatch: pytest.MonkeyPatch,
        home: Path,
        system_dirs: tuple[Path, Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("HOME", str(home))
        for name in ("APICTL_CONFIG", "APICTL_CONFIG_NAME", "APICTL_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr(sys, "argv", ["apictl", "--config-name", "missing", "doctor"])

        with pytest.raises(SystemExit) as exc_info:
            cli()

        assert exc_info.value.code == exit_codes.GENERAL_ERROR
        err_lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
        assert len(err_lines) == 1
        assert err_lines[0].startswith("error: unable to read config")

    def test_usage_error_is_one_line_exit_two(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr(sys, "argv", ["apictl", "api", "list", "apps", "--bogus", "x"])

        with pytest.raises(SystemExit) as exc_info:
            cli()

        assert exc_info.value.code == exit_codes.USAGE_ERROR
        captured = capsys.readouterr()
        err_lines = [line for line in captured.err.splitlines() if line.strip()]
        assert err_lines == ["error: unrecognized arguments: --bogus x"]
        assert "usage:" not in captured.out + captured.err

    def test_unknown_command_reported_by_boundary(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr(sys, "argv", ["apictl", "frobnicate"])

        with pytest.raises(SystemExit) as exc_info:
            cli()

        assert exc_info.value.code == exit_codes.USAGE_ERROR
        err = capsys.readouterr().err
        assert err.startswith("error: argument <command>: invalid choice: 'frobnicate'")
        assert len([line for line in err.splitlines() if line.strip()]) == 1

    def test_main_raises_usage_error(self, environ: dict[str, str]) -> None:
        with pytest.raises(UsageError) as exc_info:
            main(["doctor", "--namespace", "/x"], environ=environ)
        assert "unrecognized arguments" in str(exc_info.value)
        assert exc_info.value.hint == "Run 'apictl --help' for usage."

    def test_success_exits_zero(
        self,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(sys, "argv", ["apictl"])
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == exit_codes.SUCCESS

    def test_unexpected_error_exits_two(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        def _boom(*args: object, **kwargs: object) -> int:
            raise RuntimeError("kaboom")

        monkeypatch.setattr("apictl.cli.app.main", _boom)
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == exit_codes.UNEXPECTED_ERROR
        assert "error: unexpected RuntimeError: kaboom" in capsys.readouterr().err

    def test_keyboard_interrupt_exits_130(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _interrupt(*args: object, **kwargs: object) -> int:
            raise KeyboardInterrupt

        monkeypatch.setattr("apictl.cli.app.main", _interrupt)
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == exit_codes.KEYBOARD_INTERRUPT
