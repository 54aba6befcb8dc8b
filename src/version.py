"""Single source of truth for the application version.

Reads the version from pyproject.toml when running from a checkout, and from
the installed distribution metadata otherwise.
"""

import tomllib
from importlib import metadata
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
DISTRIBUTION_NAME = "telegram-relay-bot"


def get_version() -> str:
    """Return the version string of the project."""
    pyproject_path = _PROJECT_ROOT / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


__version__: str = get_version()
