"""``apictl api`` — commands that talk to the remote API.

Every command here runs behind the auto-auth gate: by the time a
handler executes, ``ctx.credential`` holds the gate's token, or is
``None`` when auto-auth is disabled and the ``token`` setting is used.
"""

from __future__ import annotations

from apictl.cli import exit_codes
from apictl.cli.console import out
from apictl.core.commands import ArgumentSpec, CommandContext, CommandNode
from apictl.infra.api_client import ApiClient


def _client(ctx: CommandContext) -> ApiClient:
    if ctx.credential is not None:
        token = ctx.credential.token
    else:
        token = ctx.config.get_str("token") or None
    return ctx.services.api_client(ctx.config, token)


def _handle_list(ctx: CommandContext) -> int:
    with _client(ctx) as client:
        data = client.list(ctx.arguments["resource"])
    out.print_json(data)
    return exit_codes.SUCCESS


def _handle_get(ctx: CommandContext) -> int:
    with _client(ctx) as client:
        data = client.get(ctx.arguments["resource"], ctx.arguments["id"])
    out.print_json(data)
    return exit_codes.SUCCESS


def _handle_delete(ctx: CommandContext) -> int:
    with _client(ctx) as client:
        data = client.delete(ctx.arguments["resource"], ctx.arguments["id"])
    if data is not None:
        out.print_json(data)
    return exit_codes.SUCCESS


_RESOURCE = ArgumentSpec("resource", "Resource collection, e.g. 'namespaces'.")
_IDENTIFIER = ArgumentSpec("id", "Identifier of the object.")


def build_api_command() -> CommandNode:
    """Return the ``api`` group; the assembler attaches flags and hooks."""
    return CommandNode("api", help="Interact with the remote API.").add(
        CommandNode(
            "list",
            help="List the objects of a resource.",
            handler=_handle_list,
            arguments=[_RESOURCE],
        ),
        CommandNode(
            "get",
            help="Retrieve one object.",
            handler=_handle_get,
            arguments=[_RESOURCE, _IDENTIFIER],
        ),
        CommandNode(
            "delete",
            help="Delete one object.",
            handler=_handle_delete,
            arguments=[_RESOURCE, _IDENTIFIER],
        ),
    )
