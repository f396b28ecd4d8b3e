"""``apictl completion`` — shell completion scripts.

Scripts are rendered from the command tree itself, so new commands and
flags are picked up without editing this module.  Purely local: no
command here talks to the remote API.
"""

from __future__ import annotations

from apictl.cli import exit_codes
from apictl.cli.console import out
from apictl.core.commands import CommandContext, CommandNode, Handler

SHELLS: tuple[str, ...] = ("bash", "zsh", "fish")


def _words(node: CommandNode) -> list[str]:
    """Subcommand names and ``--flags`` offered after *node*."""
    names = [child.name for child in node.children]
    flags = [f"--{spec.name}" for spec in node.effective_flags()]
    return names + flags + ["--help"]


def _value_flags(root: CommandNode) -> list[str]:
    seen: dict[str, None] = {}
    for node in root.walk():
        for spec in node.flags:
            if not spec.is_bool:
                seen.setdefault(f"--{spec.name}", None)
    return list(seen)


def render_bash(root: CommandNode) -> str:
    prog = root.name
    func = f"_{prog.replace('-', '_')}_complete"
    cases = []
    for node in root.walk():
        key = " ".join(n.name for n in node.path()[1:])
        cases.append(f'        "{key}") opts="{" ".join(_words(node))}" ;;')
    value_flags = "|".join(_value_flags(root)) or "--"
    return "\n".join(
        [
            f"# bash completion for {prog}",
            f"{func}() {{",
            '    local cur="${COMP_WORDS[COMP_CWORD]}"',
            '    local cmd="" skip=0 word opts=""',
            '    for word in "${COMP_WORDS[@]:1:COMP_CWORD-1}"; do',
            '        if [ "$skip" = 1 ]; then skip=0; continue; fi',
            '        case "$word" in',
            f"            {value_flags}) skip=1 ;;",
            "            -*) ;;",
            '            *) cmd="${cmd:+$cmd }$word" ;;',
            "        esac",
            "    done",
            '    case "$cmd" in',
            *cases,
            "    esac",
            '    COMPREPLY=( $(compgen -W "$opts" -- "$cur") )',
            "}",
            f"complete -F {func} {prog}",
            "",
        ]
    )


def render_zsh(root: CommandNode) -> str:
    return "\n".join(
        [
            f"#compdef {root.name}",
            "autoload -U +X bashcompinit && bashcompinit",
            render_bash(root),
        ]
    )


def render_fish(root: CommandNode) -> str:
    prog = root.name
    lines = [f"# fish completion for {prog}"]
    for node in root.walk():
        if not node.children:
            continue
        names = " ".join(child.name for child in node.children)
        if node is root:
            condition = "__fish_use_subcommand"
        else:
            condition = f"__fish_seen_subcommand_from {node.name}"
        lines.append(f"complete -c {prog} -f -n '{condition}' -a '{names}'")
    for node in root.walk():
        for spec in node.flags:
            flag = f"complete -c {prog} -l {spec.name} -d '{spec.help.replace(chr(39), '')}'"
            if not spec.is_bool:
                flag += " -r"
            lines.append(flag)
    lines.append("")
    return "\n".join(lines)


_RENDERERS = {"bash": render_bash, "zsh": render_zsh, "fish": render_fish}


def render(shell: str, root: CommandNode) -> str:
    try:
        renderer = _RENDERERS[shell]
    except KeyError:
        raise ValueError(f"unsupported shell '{shell}'") from None
    return renderer(root)


def _handler_for(shell: str) -> Handler:
    def _handle(ctx: CommandContext) -> int:
        out.print(render(shell, ctx.root), markup=False)
        return exit_codes.SUCCESS

    return _handle


def build_completion_command() -> CommandNode:
    group = CommandNode("completion", help="Generate shell completion scripts.")
    for shell in SHELLS:
        group.add(
            CommandNode(
                shell,
                help=f"Print the {shell} completion script.",
                handler=_handler_for(shell),
            )
        )
    return group
