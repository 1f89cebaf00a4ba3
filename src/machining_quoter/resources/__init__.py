"""Utilities for accessing packaged resource files."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

_RESOURCE_ROOT = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def _read_text(name: str) -> str:
    path = _RESOURCE_ROOT / name
    with path.open("r", encoding="utf-8") as handle:
        return handle.read()


def load_json(name: str) -> Any:
    """Parse ``name`` (relative to the resources directory) as JSON."""

    return json.loads(_read_text(name))


def _build_path(parts: Iterable[str]) -> Path:
    path = _RESOURCE_ROOT.joinpath(*parts)
    if not path.exists():
        raise FileNotFoundError(f"Resource not found: {path}")
    return path


def resource_path(*parts: str) -> Path:
    """Return the path to a resource stored alongside the package."""

    return _build_path(parts)


def default_app_settings_json() -> Path:
    """Return the default application settings JSON file."""

    return resource_path("app_settings.json")
