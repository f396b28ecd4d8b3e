"""Command tree model and invocation pipeline.

A :class:`CommandNode` owns its children, the flags it declares, and an
ordered list of pre-run hooks.  Hooks are *persistent*: when a command is
invoked, the hook list of the nearest node on the path from the invoked
command up to the root that has one is executed, in registration order.
A hook aborts the invocation by raising; later hooks and the command
body then never run.

Nothing here knows about argparse; the CLI layer translates nodes into
parsers and parsed arguments back into a :class:`CommandContext`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from apictl.core.models import CachedToken
from apictl.core.settings import EffectiveConfig

logger = logging.getLogger(__name__)

Hook = Callable[["CommandContext"], None]
Handler = Callable[["CommandContext"], int]


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FlagSpec:
    """A ``--name`` option bound into the configuration store."""

    name: str
    help: str
    default: Any = None
    is_bool: bool = False
    choices: tuple[str, ...] | None = None

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")


@dataclass(frozen=True, slots=True)
class ArgumentSpec:
    """A positional argument of a leaf command."""

    name: str
    help: str
    optional: bool = False
    choices: tuple[str, ...] | None = None


@dataclass(eq=False)
class CommandNode:
    """A node of the command tree."""

    name: str
    help: str = ""
    handler: Handler | None = None
    flags: list[FlagSpec] = field(default_factory=list)
    arguments: list[ArgumentSpec] = field(default_factory=list)
    pre_run: list[Hook] = field(default_factory=list)
    children: list[CommandNode] = field(default_factory=list)
    parent: CommandNode | None = field(default=None, repr=False)

    def add(self, *children: CommandNode) -> CommandNode:
        """Attach *children* and return ``self`` for chaining."""
        for child in children:
            child.parent = self
            self.children.append(child)
        return self

    def child(self, name: str) -> CommandNode:
        for node in self.children:
            if node.name == name:
                return node
        raise KeyError(name)

    def path(self) -> list[CommandNode]:
        """Return the nodes from the root down to ``self``."""
        nodes: list[CommandNode] = []
        node: CommandNode | None = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        return nodes[::-1]

    def full_name(self) -> str:
        return " ".join(node.name for node in self.path())

    def walk(self) -> Iterator[CommandNode]:
        """Yield ``self`` and every descendant, depth first."""
        yield self
        for node in self.children:
            yield from node.walk()

    def effective_flags(self) -> list[FlagSpec]:
        """Flags declared on this node and all of its ancestors."""
        return [spec for node in self.path() for spec in node.flags]

    def effective_pre_run(self) -> list[Hook]:
        """Hook list of the nearest node (self first) that declares one."""
        node: CommandNode | None = self
        while node is not None:
            if node.pre_run:
                return list(node.pre_run)
            node = node.parent
        return []


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------

@dataclass
class CommandContext:
    """Per-invocation state handed to hooks and handlers."""

    command: CommandNode
    config: EffectiveConfig
    arguments: Mapping[str, Any] = field(default_factory=dict)
    flag_values: Mapping[str, Any] = field(default_factory=dict)
    """Flags the user passed explicitly, keyed by flag name."""

    flag_defaults: Mapping[str, Any] = field(default_factory=dict)
    services: Any = None
    """Collaborators (credential cache, authenticator, API client factory)."""

    credential: CachedToken | None = None
    """Set by the auto-auth gate for API-facing commands."""

    @property
    def root(self) -> CommandNode:
        return self.command.path()[0]


def bind_flags(ctx: CommandContext) -> None:
    """Pre-run hook merging command-line flags into ``ctx.config``."""
    ctx.config.bind_flags(ctx.flag_values, ctx.flag_defaults)
    logger.debug("bound flags: %s", ", ".join(sorted(ctx.flag_values)) or "none")


def run_pre_run(hooks: Sequence[Hook], ctx: CommandContext) -> None:
    """Execute *hooks* in order; the first exception stops the chain."""
    for hook in hooks:
        hook(ctx)


def execute(ctx: CommandContext) -> int:
    """Run the invoked command's pre-run hooks, then its handler.

    Returns the handler's exit code.  Exceptions raised by a hook
    propagate unchanged and the handler is not called.
    """
    node = ctx.command
    if node.handler is None:
        raise ValueError(f"command '{node.full_name()}' has no handler")
    run_pre_run(node.effective_pre_run(), ctx)
    return node.handler(ctx)
