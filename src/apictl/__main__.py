"""Allow ``python -m apictl`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m apictl`` behaves identically to the ``apictl``
console script.
"""

from __future__ import annotations

from apictl.cli.app import cli

if __name__ == "__main__":
    cli()
