"""Command tree assembly and its argparse rendering.

:func:`build_command_tree` composes the root command and its three kinds
of subtrees:

* ``api`` — talks to the remote API; its pre-run hooks are
  ``[bind_flags, auto_auth]``, in that order, so flags such as
  ``--auto-auth-method`` are bound before the gate reads them.
* ``auth`` — manages the credentials the gate consumes; never gated.
* ``completion`` and ``doctor`` — local utilities; never gated.

:func:`build_parser` turns the tree into nested argparse parsers.  Every
flag is accepted on the node declaring it *and* on all of its
descendants, so ``apictl api list --refresh-cached-token`` works like
``apictl --refresh-cached-token api list``.
"""

from __future__ import annotations

import argparse
from typing import Any, NoReturn

from apictl.cli.api_commands import build_api_command
from apictl.cli.auth_commands import build_auth_command
from apictl.cli.completion import build_completion_command
from apictl.cli.doctor import build_doctor_command
from apictl.core.auto_auth import AutoAuthGate
from apictl.core.commands import CommandContext, CommandNode, FlagSpec, bind_flags
from apictl.exceptions import UsageError
from apictl.utils.constants import APP_NAME, LOG_LEVELS
from apictl.version import __version__

ROOT_FLAGS: list[FlagSpec] = [
    FlagSpec("config", "Config file (default: $HOME/.config/apictl/default.yaml)."),
    FlagSpec("config-name", "Config profile name (default: default)."),
    FlagSpec(
        "log-level",
        "Log level. Can be debug, info, warn or error.",
        default="warn",
        choices=LOG_LEVELS,
    ),
    FlagSpec(
        "refresh-cached-token",
        "If set, the cached token will be refreshed.",
        default=False,
        is_bool=True,
    ),
    FlagSpec(
        "auto-auth-method",
        "If set, override the config file's autoauth.enable.",
        default="",
    ),
]

CONNECTION_FLAGS: list[FlagSpec] = [
    FlagSpec("api", "API endpoint URL."),
    FlagSpec("namespace", "Namespace to operate in."),
    FlagSpec("token", "Token to use when auto-auth is disabled."),
    FlagSpec("api-skip-verify", "Skip TLS verification of the API.", default=False, is_bool=True),
    FlagSpec("api-cacert", "CA bundle used to verify the API."),
]


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------

def auto_auth(ctx: CommandContext) -> None:
    """Pre-run hook running the auto-auth gate for API commands."""
    gate = AutoAuthGate(ctx.config, ctx.services.cache, ctx.services.authenticator)
    ctx.credential = gate.ensure_authenticated(
        ctx.config.get_str("auto-auth-method"),
        ctx.config.get_bool("refresh-cached-token"),
    )


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def build_command_tree() -> CommandNode:
    """Return the fully wired root command."""
    root = CommandNode(
        APP_NAME,
        help="Controls a remote API with cached, automatic authentication.",
        flags=list(ROOT_FLAGS),
        pre_run=[bind_flags],
    )

    api = build_api_command()
    api.flags.extend(CONNECTION_FLAGS)
    api.pre_run = [bind_flags, auto_auth]

    auth = build_auth_command()
    auth.flags.extend(CONNECTION_FLAGS)

    root.add(api, auth, build_completion_command(), build_doctor_command())
    return root


# ---------------------------------------------------------------------------
# argparse rendering
# ---------------------------------------------------------------------------

class CommandParser(argparse.ArgumentParser):
    """Argument parser that raises :class:`UsageError` instead of exiting.

    The CLI error boundary then reports the problem as its usual single
    ``error: <message>`` line.
    """

    def error(self, message: str) -> NoReturn:
        raise UsageError(message, hint=f"Run '{self.prog} --help' for usage.")


def _add_flag(parser: argparse.ArgumentParser, spec: FlagSpec, *, inherited: bool) -> None:
    # Only the declaring parser sets a default; descendants use SUPPRESS so
    # a subparser never overwrites a value parsed by its parent.
    default = argparse.SUPPRESS if inherited else None
    kwargs: dict[str, Any] = {"dest": spec.dest, "default": default, "help": spec.help}
    if spec.is_bool:
        kwargs["action"] = "store_true"
    else:
        kwargs["metavar"] = spec.name.split("-")[-1].upper()
        if spec.choices:
            kwargs["choices"] = spec.choices
    parser.add_argument(f"--{spec.name}", **kwargs)


def _configure(parser: argparse.ArgumentParser, node: CommandNode) -> None:
    for ancestor in node.path()[:-1]:
        for spec in ancestor.flags:
            _add_flag(parser, spec, inherited=True)
    for spec in node.flags:
        _add_flag(parser, spec, inherited=False)

    for arg in node.arguments:
        kwargs: dict[str, Any] = {"help": arg.help}
        if arg.optional:
            kwargs["nargs"] = "?"
        if arg.choices:
            kwargs["choices"] = arg.choices
        parser.add_argument(arg.name, **kwargs)

    parser.set_defaults(_command=node, _parser=parser)

    if node.children:
        sub = parser.add_subparsers(
            title="commands", metavar="<command>", parser_class=CommandParser,
        )
        for child in node.children:
            child_parser = sub.add_parser(child.name, help=child.help, description=child.help)
            _configure(child_parser, child)


def build_parser(root: CommandNode) -> argparse.ArgumentParser:
    parser = CommandParser(prog=root.name, description=root.help)
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    _configure(parser, root)
    return parser


def collect_flags(
    node: CommandNode,
    namespace: argparse.Namespace,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split the flags of *node*'s path into ``(explicit, defaults)``.

    A flag is explicit when the user passed it; otherwise its declared
    default (if any) is reported.
    """
    explicit: dict[str, Any] = {}
    defaults: dict[str, Any] = {}
    for spec in node.effective_flags():
        value = getattr(namespace, spec.dest, None)
        if value is not None:
            explicit[spec.name] = value
        elif spec.default is not None:
            defaults[spec.name] = spec.default
    return explicit, defaults


def collect_arguments(node: CommandNode, namespace: argparse.Namespace) -> dict[str, Any]:
    return {arg.name: getattr(namespace, arg.name, None) for arg in node.arguments}
