"""Infrastructure: well-known directories.

Rules
-----
* Only path computation — directory creation belongs to
  :class:`~apictl.infra.config_files.YamlConfigFileSystem`.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from apictl.exceptions import HomeDirectoryError
from apictl.utils.constants import APP_NAME

SYSTEM_CONFIG_DIRS: tuple[Path, ...] = (
    Path("/usr/local/etc") / APP_NAME,
    Path("/etc") / APP_NAME,
)
"""Searched, in order, after the per-user directory."""


def home_dir(environ: Mapping[str, str]) -> Path:
    """Return the user's home directory.

    ``HOME`` (or ``USERPROFILE`` on Windows) wins; the password database
    is consulted otherwise.

    Raises
    ------
    HomeDirectoryError
        When no home directory can be determined.
    """
    for var in ("HOME", "USERPROFILE"):
        value = environ.get(var)
        if value:
            return Path(value)
    try:
        return Path.home()
    except (RuntimeError, KeyError) as exc:
        raise HomeDirectoryError(
            f"unable to find home dir: {exc}",
            hint="Set the HOME environment variable.",
        ) from exc


def user_config_dir(home: Path) -> Path:
    return home / ".config" / APP_NAME


def token_cache_dir(user_dir: Path) -> Path:
    return user_dir / "cache"


def config_search_paths(user_dir: Path) -> list[Path]:
    """User directory first, then the system directories."""
    return [user_dir, *SYSTEM_CONFIG_DIRS]
