"""Version reported by ``/health``, the OpenAPI schema and ``tablehand --version``."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _dist_version
from pathlib import Path

DIST_NAME = "tablehand"
UNKNOWN_VERSION = "0.0.0"


def _source_pyproject() -> Path | None:
    for parent in Path(__file__).resolve().parents:
        candidate = parent / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _version_from_pyproject(pyproject: Path | None) -> str:
    if pyproject is None:
        return UNKNOWN_VERSION
    try:
        with pyproject.open("rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return UNKNOWN_VERSION
    if project.get("name") not in (None, DIST_NAME):
        return UNKNOWN_VERSION
    return str(project.get("version", UNKNOWN_VERSION))


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Installed distribution version, or the source checkout's pyproject version."""
    try:
        return _dist_version(DIST_NAME)
    except PackageNotFoundError:
        return _version_from_pyproject(_source_pyproject())
