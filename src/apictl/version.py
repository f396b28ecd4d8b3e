"""Single source of truth for the apictl version string."""

__version__: str = "0.3.0"
