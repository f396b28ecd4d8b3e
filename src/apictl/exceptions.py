"""Custom exception hierarchy for apictl.

All exceptions that cross layer boundaries must inherit from
:class:`ApictlError`.  Raw third-party exceptions (PyYAML, httpx,
``OSError``) must NEVER propagate beyond the infrastructure layer — they
must be caught and re-raised as a typed subclass defined here.

Hierarchy
---------
ApictlError
├── ConfigError                 (fatal bootstrap errors)
│   ├── HomeDirectoryError
│   ├── ConfigFileNotFoundError
│   ├── ConfigProfileNotFoundError
│   ├── ConfigParseError
│   └── ConfigValueError
├── ConfigDirectoryError        (non-fatal, degrades the config)
├── AutoAuthError
├── AuthExchangeError
├── AuthConfigurationError
├── UnsupportedAuthMethodError
├── CredentialCacheError
├── ApiRequestError
├── EnvironmentError
└── UsageError                  (bad command line, exit code 2)
"""

from __future__ import annotations


class ApictlError(Exception):
    """Base exception for all apictl errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a single clean
    ``error: <message>`` line without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance, logged below the error message."""


# --- Configuration bootstrap -----------------------------------------------

class ConfigError(ApictlError):
    """Fatal bootstrap error — no command may run after one of these."""


class HomeDirectoryError(ConfigError):
    """Raised when the user's home directory cannot be determined."""


class ConfigFileNotFoundError(ConfigError):
    """Raised when an explicitly requested config file does not exist."""


class ConfigProfileNotFoundError(ConfigError):
    """Raised when no search directory holds the requested profile."""


class ConfigParseError(ConfigError):
    """Raised when a config file cannot be read or is not a YAML mapping."""


class ConfigValueError(ConfigError):
    """Raised when a configuration layer holds a value of the wrong type."""


class ConfigDirectoryError(ApictlError):
    """Raised when the per-user config directory cannot be created.

    Not a :class:`ConfigError`: the resolver absorbs it and continues
    with environment and flag values only.
    """


# --- Authentication --------------------------------------------------------

class AutoAuthError(ApictlError):
    """Raised by the auto-auth gate; aborts the gated command."""


class AuthExchangeError(ApictlError):
    """Raised when the remote authentication exchange fails."""


class AuthConfigurationError(ApictlError):
    """Raised when settings required by an auth method are missing."""


class UnsupportedAuthMethodError(ApictlError):
    """Raised when an auth method name is not known to the authenticator."""


class CredentialCacheError(ApictlError):
    """Raised when the credential cache cannot be written or cleared."""


# --- Remote API ------------------------------------------------------------

class ApiRequestError(ApictlError):
    """Raised when a request against the remote API fails."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(ApictlError):
    """Raised when a required runtime dependency is not available."""


class UsageError(ApictlError):
    """Raised when the command line cannot be parsed."""
