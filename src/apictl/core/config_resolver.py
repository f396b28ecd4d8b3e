"""Config source resolution — decides which single file is authoritative.

Precedence (first match wins, lower rules are skipped entirely):

1. Explicit file path given by flag.
2. Explicit file path given by ``APICTL_CONFIG``.
3. Profile name from flag, else ``APICTL_CONFIG_NAME``, else
   ``"default"``, searched for in each search directory in order.

The resolver depends on a :class:`~apictl.core.protocols.ConfigFileSystem`
injected at construction time; it performs no I/O itself.

Outcomes
--------
* :class:`~apictl.exceptions.ConfigError` subclasses propagate: the
  process must abort.
* :class:`~apictl.exceptions.ConfigDirectoryError` is absorbed by
  :meth:`ConfigResolver.bootstrap` and yields a *degraded* config
  carrying environment and flag values only.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from apictl.core.models import ConfigLocation, LocationKind
from apictl.core.protocols import ConfigFileSystem
from apictl.core.settings import EffectiveConfig
from apictl.exceptions import (
    ConfigDirectoryError,
    ConfigFileNotFoundError,
    ConfigProfileNotFoundError,
)
from apictl.utils.constants import (
    CONFIG_EXTENSIONS,
    DEFAULT_PROFILE,
    ENV_CONFIG,
    ENV_CONFIG_NAME,
)

logger = logging.getLogger(__name__)


class ConfigResolver:
    """Builds the :class:`EffectiveConfig` for one invocation.

    Parameters
    ----------
    filesystem:
        Any object satisfying the :class:`ConfigFileSystem` protocol.
    environ:
        Environment mapping, used both for ``APICTL_CONFIG*`` lookup and
        for the automatic environment layer of the resulting config.
    """

    def __init__(
        self,
        filesystem: ConfigFileSystem,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._fs: ConfigFileSystem = filesystem
        self._environ: Mapping[str, str] = environ if environ is not None else {}

    # ------------------------------------------------------------------
    # Location decision (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def locate(
        explicit_path: str | None,
        explicit_profile: str | None,
        env_path: str | None,
        env_profile: str | None,
    ) -> ConfigLocation:
        """Pick the active :class:`ConfigLocation`.

        An explicit path from either source beats any profile name, even
        a profile name given by flag while the path comes from the
        environment.
        """
        if explicit_path:
            return ConfigLocation.explicit(explicit_path, origin="flag")
        if env_path:
            return ConfigLocation.explicit(env_path, origin="env")
        if explicit_profile:
            return ConfigLocation.named(explicit_profile, origin="flag")
        if env_profile:
            return ConfigLocation.named(env_profile, origin="env")
        return ConfigLocation.named(DEFAULT_PROFILE, origin="default")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def find_profile(self, profile: str, search_paths: Sequence[Path]) -> Path:
        """Return the first ``<profile>.<ext>`` found in *search_paths*.

        Raises
        ------
        ConfigProfileNotFoundError
            If no directory holds a matching file.
        """
        for directory in search_paths:
            for ext in CONFIG_EXTENSIONS:
                candidate = Path(directory) / f"{profile}{ext}"
                if self._fs.exists(candidate):
                    return candidate
        searched = ", ".join(str(p) for p in search_paths) or "no directory"
        hint = None
        if search_paths:
            hint = f"Create {Path(search_paths[0]) / profile}.yaml or pass --config <path>."
        raise ConfigProfileNotFoundError(
            f"unable to read config: no '{profile}' profile found in {searched}",
            hint=hint,
        )

    def resolve(
        self,
        explicit_path: str | None,
        explicit_profile: str | None,
        env_path: str | None,
        env_profile: str | None,
        search_paths: Sequence[Path],
    ) -> EffectiveConfig:
        """Load the authoritative file and wrap it in an :class:`EffectiveConfig`.

        Raises
        ------
        ConfigFileNotFoundError
            If an explicit path (flag or env) does not exist.
        ConfigProfileNotFoundError
            If profile resolution finds no file.
        ConfigParseError
            If the chosen file cannot be parsed.
        ConfigValueError
            If the file or the environment holds a mistyped option.
        """
        location = self.locate(explicit_path, explicit_profile, env_path, env_profile)

        if location.kind is LocationKind.EXPLICIT_PATH:
            path = Path(location.target)
            if not self._fs.exists(path):
                given_by = "--config" if location.origin == "flag" else ENV_CONFIG
                raise ConfigFileNotFoundError(
                    f"config file does not exist: {path}",
                    hint=f"Check the path given by {given_by}.",
                )
            logger.debug("using config file %s (from %s)", path, location.origin)
        else:
            logger.debug("using config name %s (from %s)", location.target, location.origin)
            path = self.find_profile(location.target, search_paths)
            logger.debug("found profile at %s", path)

        data = self._fs.load(path)
        return EffectiveConfig(data, environ=self._environ, source=path)

    def bootstrap(
        self,
        user_dir: Path,
        search_paths: Sequence[Path],
        *,
        explicit_path: str | None = None,
        explicit_profile: str | None = None,
    ) -> EffectiveConfig:
        """Prepare the user config directory, then :meth:`resolve`.

        A failure to create *user_dir* is not fatal: it is logged and a
        degraded config with no file layer is returned.
        """
        try:
            self._fs.ensure_dir(user_dir)
        except ConfigDirectoryError as exc:
            logger.warning("%s; continuing without a config file", exc)
            return EffectiveConfig(environ=self._environ, degraded=True)

        return self.resolve(
            explicit_path,
            explicit_profile,
            self._environ.get(ENV_CONFIG) or None,
            self._environ.get(ENV_CONFIG_NAME) or None,
            search_paths,
        )
