"""CLI application entry point and bootstrap pipeline for apictl.

This module is the **sole error boundary** for the entire application.
It catches :class:`~apictl.exceptions.ApictlError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, printing a single ``error: <message>``
line and returning well-defined exit codes.

Invocation pipeline
-------------------
1. Build the command tree and parse arguments.
2. Configure logging from ``--log-level`` / ``APICTL_LOG_LEVEL``.
3. Resolve the configuration (fatal errors abort here).
4. Run the invoked command's pre-run hooks (flag binding, then the
   auto-auth gate for API commands), then its handler.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import Any

import httpx

from apictl.cli import exit_codes
from apictl.cli.console import console
from apictl.cli.services import Services
from apictl.cli.tree import build_command_tree, build_parser, collect_arguments, collect_flags
from apictl.core.commands import CommandContext, CommandNode, execute
from apictl.core.config_resolver import ConfigResolver
from apictl.core.settings import EffectiveConfig
from apictl.exceptions import ApictlError, UsageError
from apictl.infra.config_files import YamlConfigFileSystem
from apictl.infra.logging_setup import configure_logging
from apictl.infra.paths import config_search_paths, home_dir, token_cache_dir, user_config_dir

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

def _log_level(
    explicit: Mapping[str, Any],
    defaults: Mapping[str, Any],
    environ: Mapping[str, str],
) -> str:
    # Logging is configured before any config file is read, so only
    # flags and the environment can choose the level.
    early = EffectiveConfig(environ=environ)
    early.bind_flags(explicit, defaults)
    return early.get_str("log-level", "warn")


def load_config(
    explicit: Mapping[str, Any],
    environ: Mapping[str, str],
    *,
    transport: httpx.BaseTransport | None = None,
) -> tuple[EffectiveConfig, Services]:
    """Resolve the configuration and the collaborators built on it.

    Raises
    ------
    ConfigError
        On any fatal bootstrap failure.
    """
    user_dir = user_config_dir(home_dir(environ))
    resolver = ConfigResolver(YamlConfigFileSystem(), environ)
    config = resolver.bootstrap(
        user_dir,
        config_search_paths(user_dir),
        explicit_path=explicit.get("config") or None,
        explicit_profile=explicit.get("config-name") or None,
    )
    return config, Services.default(token_cache_dir(user_dir), transport=transport)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(
    argv: list[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> int:
    """Run the apictl CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    environ:
        Environment mapping.  When ``None``, ``os.environ`` is used.
        Accepting both enables deterministic testing without
        monkeypatching.
    transport:
        Optional httpx transport shared by the authenticator and the API
        client.

    Returns
    -------
    int
        OS process exit code.
    """
    environ = os.environ if environ is None else environ

    root = build_command_tree()
    parser = build_parser(root)
    args = parser.parse_args(argv)

    node: CommandNode = args._command
    if node.handler is None:
        args._parser.print_help()
        return exit_codes.SUCCESS

    explicit, defaults = collect_flags(node, args)
    configure_logging(_log_level(explicit, defaults, environ))

    config, services = load_config(explicit, environ, transport=transport)

    ctx = CommandContext(
        command=node,
        config=config,
        arguments=collect_arguments(node, args),
        flag_values=explicit,
        flag_defaults=defaults,
        services=services,
    )
    logger.debug("running %s", node.full_name())
    return execute(ctx)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def _report(exc: ApictlError) -> None:
    console.print(f"error: {exc}", markup=False)
    if exc.hint:
        logger.info("hint: %s", exc.hint)


def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except UsageError as exc:
        _report(exc)
        sys.exit(exit_codes.USAGE_ERROR)
    except ApictlError as exc:
        _report(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\naborted by user", markup=False)
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            f"error: unexpected {type(exc).__name__}: {exc}",
            markup=False,
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
