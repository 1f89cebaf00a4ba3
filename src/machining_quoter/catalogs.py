"""Read-only reference catalogs consumed by the calculation engine.

The engine never reaches for ambient state: callers hand it a
:class:`ReferenceCatalog`. The bundled defaults live under
``resources/catalog``; a directory of JSON or CSV files can replace any of
the four tables.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, TypeVar

from machining_quoter.config import ConfigError
from machining_quoter.domain import Machine, Material, Process, RegionCost, Tool
from machining_quoter.resources import load_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATALOG_TABLES = ("materials", "machines", "tools", "processes")


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ReferenceCatalog:
    """Materials, machines and tools keyed by id; processes keyed by name."""

    materials: Mapping[str, Material] = field(default_factory=dict)
    machines: Mapping[str, Machine] = field(default_factory=dict)
    tools: Mapping[str, Tool] = field(default_factory=dict)
    processes: Mapping[str, Process] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in CATALOG_TABLES:
            object.__setattr__(self, name, _freeze(getattr(self, name)))

    @classmethod
    def from_records(
        cls,
        *,
        materials: Iterable[Material] = (),
        machines: Iterable[Machine] = (),
        tools: Iterable[Tool] = (),
        processes: Iterable[Process] = (),
    ) -> "ReferenceCatalog":
        return cls(
            materials={item.id: item for item in materials},
            machines={item.id: item for item in machines},
            tools={item.id: item for item in tools},
            processes={item.name: item for item in processes},
        )

    def material(self, key: str | None) -> Material | None:
        """Return a material by id, falling back to a case-insensitive name match."""

        if not key:
            return None
        found = self.materials.get(key)
        if found is not None:
            return found
        wanted = key.strip().lower()
        for material in self.materials.values():
            if material.name.strip().lower() == wanted:
                return material
        return None

    def merged(self, other: "ReferenceCatalog") -> "ReferenceCatalog":
        """Return a catalog where entries of ``other`` replace ours by key."""

        return ReferenceCatalog(
            materials={**self.materials, **other.materials},
            machines={**self.machines, **other.machines},
            tools={**self.tools, **other.tools},
            processes={**self.processes, **other.processes},
        )


def _parse_records(records: Iterable[Any], factory: Callable[[Mapping[str, Any]], T], source: str) -> list[T]:
    parsed: list[T] = []
    for index, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{source}: entry {index} is not an object")
        try:
            parsed.append(factory(raw))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"{source}: entry {index} is invalid: {exc}") from exc
    return parsed


@lru_cache(maxsize=1)
def default_catalog() -> ReferenceCatalog:
    """Return the catalog bundled with the package."""

    return ReferenceCatalog.from_records(
        materials=_parse_records(load_json("catalog/materials.json"), Material.from_dict, "materials.json"),
        machines=_parse_records(load_json("catalog/machines.json"), Machine.from_dict, "machines.json"),
        tools=_parse_records(load_json("catalog/tools.json"), Tool.from_dict, "tools.json"),
        processes=_parse_records(load_json("catalog/processes.json"), Process.from_dict, "processes.json"),
    )


def _clean_row(record: Mapping[str, Any]) -> dict[str, Any]:
    """Drop the NaN cells pandas produces for empty CSV fields."""

    return {
        str(key): value
        for key, value in record.items()
        if not (isinstance(value, float) and math.isnan(value))
    }


def read_table(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array or a CSV file into a list of row mappings."""

    if not path.exists():
        raise ConfigError(f"Catalog file not found: {path}")

    if path.suffix.lower() == ".csv":
        import pandas as pd

        df = pd.read_csv(path)
        return [_clean_row(record.to_dict()) for _, record in df.iterrows()]

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed JSON in {path.name}: {exc}") from exc
    if not isinstance(raw, list):
        raise ConfigError(f"Catalog root must be an array in {path.name}")
    return raw


def _find_table(directory: Path, name: str) -> Path | None:
    for suffix in (".json", ".csv"):
        candidate = directory / f"{name}{suffix}"
        if candidate.exists():
            return candidate
    return None


def load_catalog_dir(directory: str | Path, *, base: ReferenceCatalog | None = None) -> ReferenceCatalog:
    """Load ``materials``, ``machines``, ``tools`` and ``processes`` tables.

    Each table may be ``<name>.json`` or ``<name>.csv``. Tables missing from
    the directory are taken from ``base`` (the bundled catalog by default).
    Processes carry nested parameter lists and are only read from JSON.
    """

    root = Path(directory).expanduser()
    if not root.is_dir():
        raise ConfigError(f"Catalog directory not found: {root}")

    factories: dict[str, Callable[[Mapping[str, Any]], Any]] = {
        "materials": Material.from_dict,
        "machines": Machine.from_dict,
        "tools": Tool.from_dict,
        "processes": Process.from_dict,
    }
    loaded: dict[str, list[Any]] = {}
    for name, factory in factories.items():
        path = _find_table(root, name)
        if path is None:
            continue
        if name == "processes" and path.suffix.lower() == ".csv":
            raise ConfigError(f"Processes must be supplied as JSON, not {path.name}")
        loaded[name] = _parse_records(read_table(path), factory, path.name)
        logger.debug("Loaded %d %s from %s", len(loaded[name]), name, path)

    override = ReferenceCatalog.from_records(**loaded)
    return (base or default_catalog()).merged(override)


def load_region_costs(path: str | Path) -> tuple[RegionCost, ...]:
    """Load dated regional price overrides from JSON or CSV."""

    table = Path(path).expanduser()
    costs = _parse_records(read_table(table), RegionCost.from_dict, table.name)
    logger.debug("Loaded %d region costs from %s", len(costs), table)
    return tuple(costs)


__all__ = [
    "CATALOG_TABLES",
    "ReferenceCatalog",
    "default_catalog",
    "load_catalog_dir",
    "load_region_costs",
    "read_table",
]
