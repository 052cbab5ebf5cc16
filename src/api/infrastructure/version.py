"""Version management for the tenant admin service.

Provides version information using importlib.metadata with fallback to
pyproject.toml when running from a source checkout.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "authp-tenant-admin"

# src/api/infrastructure/version.py -> repository root
_PYPROJECT_PATH = Path(__file__).resolve().parents[3] / "pyproject.toml"


def get_version() -> str:
    """Get the application version.

    Reads the installed distribution's metadata, falling back to the
    repository's pyproject.toml for uninstalled checkouts.

    Returns:
        Version string (e.g., "0.1.0")
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        with open(_PYPROJECT_PATH, "rb") as f:
            pyproject_data = tomllib.load(f)

        return pyproject_data["project"]["version"]


__version__ = get_version()
