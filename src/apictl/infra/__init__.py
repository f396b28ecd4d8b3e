"""Infrastructure layer — external system integration.

This layer wraps all interaction with the filesystem, PyYAML, and the
remote API over httpx.  Every raw third-party exception must be caught
here and re-raised as a :class:`~apictl.exceptions.ApictlError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from apictl.infra.api_client import ApiClient
from apictl.infra.config_files import YamlConfigFileSystem
from apictl.infra.http_authenticator import HttpAuthenticator
from apictl.infra.token_cache import FileTokenCache

__all__: list[str] = [
    "ApiClient",
    "FileTokenCache",
    "HttpAuthenticator",
    "YamlConfigFileSystem",
]
