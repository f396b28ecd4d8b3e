"""Layered configuration store — :class:`EffectiveConfig`.

Values are validated by pydantic-settings.  :class:`ApictlSettings`
declares every option apictl reads; the layers are its sources, highest
precedence first:

1. Flags explicitly given on the command line (init kwargs).
2. Environment variables (``APICTL_<KEY>``, ``-`` and ``.`` → ``_``).
3. The loaded YAML config file.
4. Flag defaults declared on the command tree.
5. The field defaults of :class:`ApictlSettings`.

:class:`EffectiveConfig` is the read-only :class:`~collections.abc.Mapping`
view handed to commands, keyed by dotted option names
(``autoauth.ldap.user``, ``api-skip-verify``, ...).

Guarantees
----------
* No filesystem access — the file layer arrives as an already-parsed dict.
* Keys are case-insensitive; they are lower-cased on entry.
* Only :meth:`EffectiveConfig.bind_flags` changes the store after
  construction.
* Invalid values raise :class:`~apictl.exceptions.ConfigValueError`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    InitSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from apictl.exceptions import ConfigValueError
from apictl.utils.constants import ENV_PREFIX

OPTION_KEYS: tuple[str, ...] = (
    "config",
    "config-name",
    "log-level",
    "refresh-cached-token",
    "auto-auth-method",
    "api",
    "namespace",
    "token",
    "api-skip-verify",
    "api-cacert",
    "api-timeout",
    "method",
    "all",
    "autoauth.enable",
    "autoauth.validity",
    "autoauth.audience",
    "autoauth.ldap.user",
    "autoauth.ldap.pass",
    "autoauth.ldap.source-namespace",
    "autoauth.ldap.source-name",
    "autoauth.http.user",
    "autoauth.http.pass",
    "autoauth.http.source-namespace",
    "autoauth.http.source-name",
    "autoauth.mtls.cert",
    "autoauth.mtls.key",
    "autoauth.mtls.source-namespace",
    "autoauth.mtls.source-name",
)
"""Dotted names of the declared options, in iteration order."""


def field_name(key: str) -> str:
    """Return the :class:`ApictlSettings` field backing option *key*."""
    return key.lower().replace("-", "_").replace(".", "_")


_OPTION_BY_FIELD: dict[str, str] = {field_name(key): key for key in OPTION_KEYS}


def flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted, lower-cased keys.

    ``{"autoauth": {"enable": "ldap"}}`` becomes
    ``{"autoauth.enable": "ldap"}``.  Insertion order is preserved.
    """
    flat: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = f"{prefix}{str(raw_key).lower()}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten(value, prefix=f"{key}."))
        else:
            flat[key] = value
    return flat


def _source_values(values: Mapping[str, Any]) -> dict[str, Any]:
    """Key *values* by field name; undeclared keys stay dotted extras.

    ``None`` (an empty YAML value) counts as unset.
    """
    result: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        name = field_name(key)
        result[name if name in _OPTION_BY_FIELD else key.lower()] = value
    return result


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------

class ApictlSettings(BaseSettings):
    """Every option apictl reads, with its documented default."""

    model_config = SettingsConfigDict(
        env_prefix=f"{ENV_PREFIX}_",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    # Bootstrap
    config: str | None = None
    config_name: str | None = None
    log_level: Literal["debug", "info", "warn", "warning", "error"] = "warn"
    refresh_cached_token: bool = False
    auto_auth_method: str = ""

    # Connection
    api: str = "https://127.0.0.1:44443"
    namespace: str = "/"
    token: str | None = None
    api_skip_verify: bool = False
    api_cacert: str | None = None
    api_timeout: float = 30.0

    # auth commands
    method: str | None = None
    all: bool = False

    # autoauth section
    autoauth_enable: str = ""
    autoauth_validity: str = "24h"
    autoauth_audience: Annotated[list[str], NoDecode] = []
    autoauth_ldap_user: str | None = None
    autoauth_ldap_pass: str | None = None
    autoauth_ldap_source_namespace: str | None = None
    autoauth_ldap_source_name: str | None = None
    autoauth_http_user: str | None = None
    autoauth_http_pass: str | None = None
    autoauth_http_source_namespace: str | None = None
    autoauth_http_source_name: str | None = None
    autoauth_mtls_cert: str | None = None
    autoauth_mtls_key: str | None = None
    autoauth_mtls_source_namespace: str | None = None
    autoauth_mtls_source_name: str | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _lower_level(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("autoauth_audience", mode="before")
    @classmethod
    def _split_audience(cls, value: Any) -> Any:
        # Environment and flags give "a,b"; YAML gives a list.
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class _MappingEnvSource(EnvSettingsSource):
    """:class:`EnvSettingsSource` reading an explicit mapping, not ``os.environ``."""

    def __init__(self, settings_cls: type[BaseSettings], environ: Mapping[str, str]) -> None:
        self._environ = environ
        super().__init__(settings_cls)

    def _load_env_vars(self) -> Mapping[str, str | None]:
        return {
            key.lower(): value
            for key, value in self._environ.items()
            if not (self.env_ignore_empty and value == "")
        }


def build_settings(
    *,
    flags: Mapping[str, Any],
    environ: Mapping[str, str],
    file_values: Mapping[str, Any],
    flag_defaults: Mapping[str, Any],
) -> ApictlSettings:
    """Validate the layers into one :class:`ApictlSettings`.

    Raises
    ------
    ConfigValueError
        When a layer holds a value of the wrong type.
    """
    file_layer = _source_values(file_values)
    defaults_layer = _source_values(flag_defaults)

    class _LayeredSettings(ApictlSettings):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (
                init_settings,
                _MappingEnvSource(settings_cls, environ),
                InitSettingsSource(settings_cls, file_layer),
                InitSettingsSource(settings_cls, defaults_layer),
            )

    try:
        return _LayeredSettings(**_source_values(flags))
    except ValidationError as exc:
        problems = "; ".join(
            f"{_OPTION_BY_FIELD.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigValueError(
            f"invalid value for {problems}",
            hint="Check the config file, APICTL_ variables and flags.",
        ) from exc


# ---------------------------------------------------------------------------
# Read-only view
# ---------------------------------------------------------------------------

class EffectiveConfig(Mapping[str, Any]):
    """Final merged configuration for one process invocation.

    Parameters
    ----------
    file_data:
        Parsed content of the authoritative config file, or ``None``
        when no file was loaded.
    environ:
        Environment mapping consulted for automatic binding.  Passed
        explicitly so nothing reads ``os.environ`` behind the caller's back.
    source:
        Path of the loaded file, if any.
    degraded:
        ``True`` when file loading was skipped after a non-fatal
        bootstrap error.
    """

    def __init__(
        self,
        file_data: Mapping[str, Any] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        source: Path | None = None,
        degraded: bool = False,
    ) -> None:
        self._file: dict[str, Any] = flatten(file_data or {})
        self._environ: Mapping[str, str] = environ if environ is not None else {}
        self.source: Path | None = source
        self.degraded: bool = degraded
        self._settings: ApictlSettings = self._build({}, {})

    def _build(self, flags: Mapping[str, Any], defaults: Mapping[str, Any]) -> ApictlSettings:
        return build_settings(
            flags=flags,
            environ=self._environ,
            file_values=self._file,
            flag_defaults=defaults,
        )

    @property
    def settings(self) -> ApictlSettings:
        """The validated settings object behind this view."""
        return self._settings

    def bind_flags(
        self,
        explicit: Mapping[str, Any],
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        """Merge command-line flags into the store.

        *explicit* holds flags the user actually passed; they override
        every other layer.  *defaults* holds the declared defaults of the
        remaining flags; they only beat the field defaults.
        """
        self._settings = self._build(explicit, defaults or {})

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)`` for *key*."""
        name = field_name(key)
        if name in _OPTION_BY_FIELD:
            return True, getattr(self._settings, name)
        extra = self._settings.model_extra or {}
        if key.lower() in extra:
            return True, extra[key.lower()]
        return False, None

    def get(self, key: str, default: Any = None) -> Any:
        found, value = self.lookup(key)
        return value if found else default

    def get_str(self, key: str, default: str = "") -> str:
        value = self.get(key)
        if value is None:
            return default
        return str(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return bool(value)

    def get_list(self, key: str) -> list[str]:
        value = self.get(key)
        if not value:
            return []
        return [str(item) for item in value]

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        found, value = self.lookup(key)
        if not found:
            raise KeyError(key)
        return value

    def __iter__(self) -> Iterator[str]:
        yield from OPTION_KEYS
        yield from self._settings.model_extra or {}

    def __len__(self) -> int:
        return len(OPTION_KEYS) + len(self._settings.model_extra or {})

    def __repr__(self) -> str:
        return f"EffectiveConfig(source={self.source!r}, degraded={self.degraded})"
