"""``apictl auth`` — manage the credentials the auto-auth gate consumes.

These commands are never gated: they create, inspect and clear the very
tokens the gate would otherwise try to obtain.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apictl.cli import exit_codes
from apictl.cli.console import console, out
from apictl.core.auto_auth import resolve_method, target_of
from apictl.core.commands import CommandContext, CommandNode, FlagSpec
from apictl.core.models import CachedToken
from apictl.exceptions import AuthConfigurationError, UnsupportedAuthMethodError

logger = logging.getLogger(__name__)


def _method(ctx: CommandContext) -> str:
    """``--method``, else ``--auto-auth-method``, else ``autoauth.enable``."""
    override = ctx.config.get_str("method") or ctx.config.get_str("auto-auth-method")
    method = resolve_method(override, ctx.config)
    if not method:
        raise AuthConfigurationError(
            "no auth method given",
            hint="Pass --method or set autoauth.enable in the config file.",
        )
    return method


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _handle_login(ctx: CommandContext) -> int:
    method = _method(ctx)
    authenticator = ctx.services.authenticator
    if method not in authenticator.methods:
        raise UnsupportedAuthMethodError(
            f"unsupported auth method '{method}'",
            hint=f"Supported methods: {', '.join(sorted(authenticator.methods))}.",
        )

    raw = authenticator.authenticate(method, ctx.config)
    token = CachedToken(
        method=method,
        target=target_of(ctx.config),
        token=raw,
        issued_at=datetime.now(timezone.utc),
    )
    ctx.services.cache.put(token)
    logger.info("cached new %s token for %s", method, token.target)
    out.print(raw, markup=False)
    return exit_codes.SUCCESS


def _handle_check(ctx: CommandContext) -> int:
    method = _method(ctx)
    target = target_of(ctx.config)
    cached = ctx.services.cache.get(method, target)
    if cached is None:
        console.print(f"no valid cached token for {method} at {target}", markup=False)
        return exit_codes.GENERAL_ERROR

    out.print(f"method:  {cached.method}", markup=False)
    out.print(f"target:  {cached.target}", markup=False)
    out.print(f"issued:  {_format_time(cached.issued_at)}", markup=False)
    out.print(f"expires: {_format_time(cached.expires_at)}", markup=False)
    return exit_codes.SUCCESS


def _handle_clear(ctx: CommandContext) -> int:
    cache = ctx.services.cache
    if ctx.config.get_bool("all"):
        removed = cache.clear()
        console.print(f"removed {removed} cached token(s)", markup=False)
        return exit_codes.SUCCESS

    method = _method(ctx)
    cache.invalidate(method, target_of(ctx.config))
    console.print(f"cleared cached {method} token", markup=False)
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------

_METHOD_FLAG = FlagSpec("method", "Auth method (default: the auto-auth method).")


def build_auth_command() -> CommandNode:
    """Return the ``auth`` group; the assembler attaches connection flags."""
    return CommandNode("auth", help="Manage cached credentials.").add(
        CommandNode(
            "login",
            help="Authenticate now, cache the token and print it.",
            handler=_handle_login,
            flags=[_METHOD_FLAG],
        ),
        CommandNode(
            "check",
            help="Show the cached token for a method.",
            handler=_handle_check,
            flags=[_METHOD_FLAG],
        ),
        CommandNode(
            "clear",
            help="Remove cached tokens.",
            handler=_handle_clear,
            flags=[
                _METHOD_FLAG,
                FlagSpec("all", "Remove every cached token.", default=False, is_bool=True),
            ],
        ),
    )
