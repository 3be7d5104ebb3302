"""Line-by-line terminal typing practice."""

from __future__ import annotations

import logging
import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

logging.getLogger(__name__).addHandler(logging.NullHandler())

DIST_NAME = "linetyper"


def _checkout_version(package_dir: Path) -> str | None:
    """Version declared by the pyproject.toml of a source checkout, if any.

    Only the nearest pyproject is read, and only when it names this
    distribution, so a project enclosing an installed copy is ignored.
    """
    for base in package_dir.parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            with open(pyproject, "rb") as handle:
                project = tomllib.load(handle).get("project", {})
        except (OSError, tomllib.TOMLDecodeError):
            return None
        if project.get("name") != DIST_NAME:
            return None
        return project.get("version")
    return None


def _resolve_version() -> str:
    found = _checkout_version(Path(__file__).resolve().parent)
    if found:
        return found
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
