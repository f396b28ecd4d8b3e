"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``, ``error:``
lines) remain functional even when Rich is not installed.

Two proxies are exported: :data:`console` writes diagnostics to stderr,
:data:`out` writes command results to stdout.
"""

from __future__ import annotations

import json
import sys
from typing import Any

from apictl.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console(*, stderr: bool = True) -> Any:
	"""Create a Rich console instance targeting stderr (or stdout)."""
	console_class = _load_rich_console_class()
	return console_class(stderr=stderr)


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback."""

	def __init__(self, *, stderr: bool) -> None:
		self._stderr = stderr

	def _stream(self) -> Any:
		return sys.stderr if self._stderr else sys.stdout

	def print(self, *objects: object, markup: bool = True) -> None:
		"""Render with Rich when available, else plain print."""
		try:
			rich_console = get_rich_console(stderr=self._stderr)
		except EnvironmentError:
			print(*objects, file=self._stream())
			return
		rich_console.print(
			*objects, markup=markup, highlight=markup, emoji=markup, soft_wrap=True,
		)

	def print_json(self, data: Any) -> None:
		"""Pretty-print *data* as JSON."""
		text = json.dumps(data, indent=2, sort_keys=False, default=str)
		try:
			rich_console = get_rich_console(stderr=self._stderr)
		except EnvironmentError:
			print(text, file=self._stream())
			return
		rich_console.print_json(text)


console = _ConsoleProxy(stderr=True)
out = _ConsoleProxy(stderr=False)
