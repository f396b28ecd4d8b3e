"""apictl — command-line client bootstrap for a remote API.

Resolves the effective configuration (file, environment, flags) and gates
API commands behind an automatic, cache-aware authentication step.
"""

from apictl.version import __version__

__all__: list[str] = ["__version__"]
