"""Names shared by every layer: program name, environment prefix, config lookup."""

from __future__ import annotations

APP_NAME: str = "apictl"

ENV_PREFIX: str = "APICTL"
"""Prefix of every environment variable read by apictl."""

ENV_CONFIG: str = f"{ENV_PREFIX}_CONFIG"
"""Explicit config file path."""

ENV_CONFIG_NAME: str = f"{ENV_PREFIX}_CONFIG_NAME"
"""Config profile name."""

DEFAULT_PROFILE: str = "default"

CONFIG_EXTENSIONS: tuple[str, ...] = (".yaml", ".yml")
"""Extensions tried, in order, when searching for a profile file."""

LOG_LEVELS: tuple[str, ...] = ("debug", "info", "warn", "error")

AUTOAUTH_METHOD_KEY: str = "autoauth.enable"
