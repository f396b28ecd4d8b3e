"""Logging configuration for apictl.

Diagnostics go to stderr through Rich's ``RichHandler``.  Like the
console helpers, Rich is imported lazily: when it is missing a plain
``StreamHandler`` is installed instead so bootstrap never fails on it.
"""

from __future__ import annotations

import logging
import sys

from apictl.utils.constants import APP_NAME

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(name: str) -> int:
    """Map a ``--log-level`` value to a logging level.

    Raises
    ------
    ValueError
        For names outside :data:`LEVELS`.
    """
    try:
        return LEVELS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"invalid log level '{name}'") from None


def _build_handler() -> logging.Handler:
    try:
        from rich.console import Console
        from rich.logging import RichHandler
    except ModuleNotFoundError:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        return handler
    return RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=False,
    )


def configure_logging(level: str | int = "warn") -> None:
    """Install the apictl handler on the package logger.

    Calling it again replaces the previous handler, so repeated
    invocations in one process (tests) never duplicate output.
    """
    numeric = parse_level(level) if isinstance(level, str) else level

    logger = logging.getLogger(APP_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(_build_handler())
    logger.setLevel(numeric)
    logger.propagate = False

    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))
    logging.getLogger("httpcore").setLevel(max(numeric, logging.WARNING))
    logger.debug("log level: %s", logging.getLevelName(numeric))
