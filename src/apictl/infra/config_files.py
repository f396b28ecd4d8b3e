"""PyYAML-backed implementation of :class:`~apictl.core.protocols.ConfigFileSystem`.

This module is the **only** place in the codebase that imports ``yaml``.
Parse and OS errors are caught here and re-raised as typed
:class:`~apictl.exceptions.ApictlError` subclasses.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from apictl.exceptions import ConfigDirectoryError, ConfigParseError

logger = logging.getLogger(__name__)


class YamlConfigFileSystem:
    """Concrete :class:`ConfigFileSystem` reading YAML documents from disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def ensure_dir(self, path: Path) -> None:
        path = Path(path)
        if path.is_dir():
            return
        try:
            path.mkdir(parents=True, mode=0o755)
        except OSError as exc:
            raise ConfigDirectoryError(f"failed to create {path}: {exc}") from exc
        logger.debug("created config directory %s", path)

    def load(self, path: Path) -> dict[str, Any]:
        """Parse *path*; an empty document yields an empty mapping.

        Raises
        ------
        ConfigParseError
            When the file is unreadable, malformed, or not a mapping.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigParseError(f"unable to read config {path}: {exc}") from exc

        try:
            data: Any = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigParseError(
                f"unable to read config {path}: {exc}",
                hint="The file must be a valid YAML document.",
            ) from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigParseError(
                f"unable to read config {path}: top level must be a mapping, "
                f"got {type(data).__name__}",
            )
        return data
