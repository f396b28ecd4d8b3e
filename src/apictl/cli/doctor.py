"""``apictl doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment and the resolved configuration are
usable.  Local-only: it never contacts the remote API and is not gated.
"""

from __future__ import annotations

import platform
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from apictl.cli import exit_codes
from apictl.cli.console import console
from apictl.core.auto_auth import resolve_method
from apictl.core.commands import CommandContext, CommandNode
from apictl.core.settings import EffectiveConfig
from apictl.version import __version__


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    major, minor = sys.version_info[:2]
    ok = (major, minor) >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _package_check(label: str, module: str) -> tuple[str, str, str]:
    """Return (label, value, status) for an importable dependency."""
    try:
        imported = __import__(module)
    except ImportError:
        return label, "NOT INSTALLED", "[red]FAIL[/red]"
    version = getattr(imported, "__version__", None) or "unknown"
    return label, str(version), "[green]OK[/green]"


def _rich_check() -> tuple[str, str, str]:
    """Rich is optional: missing means plain output, not failure."""
    try:
        import rich  # noqa: F401
    except ImportError:
        return "rich", "not installed", "[yellow]WARN[/yellow]"
    try:
        return "rich", version("rich"), "[green]OK[/green]"
    except PackageNotFoundError:
        return "rich", "unknown", "[green]OK[/green]"


def _config_check(config: EffectiveConfig) -> tuple[str, str, str]:
    """Return (label, value, status) for the resolved config file."""
    if config.degraded:
        return "config", "none (degraded)", "[yellow]WARN[/yellow]"
    if config.source is None:
        return "config", "none", "[yellow]WARN[/yellow]"
    return "config", str(config.source), "[green]OK[/green]"


def _auto_auth_check(config: EffectiveConfig) -> tuple[str, str, str]:
    method = resolve_method(config.get_str("auto-auth-method"), config)
    if not method:
        return "auto-auth", "disabled", "[green]OK[/green]"
    return "auto-auth", method, "[green]OK[/green]"


def _cache_check(cache_dir: Path | None) -> tuple[str, str, str]:
    if cache_dir is None:
        return "cache", "unknown", "[yellow]WARN[/yellow]"
    if cache_dir.is_dir():
        return "cache", str(cache_dir), "[green]OK[/green]"
    return "cache", f"{cache_dir} (not created yet)", "[green]OK[/green]"


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    release = platform.release()
    machine = platform.machine()
    value = f"{system_display} {release} ({machine})"
    return "OS", value, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\napictl doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<40} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<40} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(config: EffectiveConfig, cache_dir: Path | None = None) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = [
        ("apictl", __version__, "[green]OK[/green]"),
        _python_version_check(),
        _package_check("PyYAML", "yaml"),
        _package_check("httpx", "httpx"),
        _rich_check(),
        _config_check(config),
        _auto_auth_check(config),
        _cache_check(cache_dir),
        _os_check(),
    ]

    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    table = Table(
        title="apictl doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS


def _handle_doctor(ctx: CommandContext) -> int:
    return run_doctor(ctx.config, getattr(ctx.services, "cache_dir", None))


def build_doctor_command() -> CommandNode:
    return CommandNode(
        "doctor",
        help="Check the runtime environment and configuration.",
        handler=_handle_doctor,
    )
