"""Reference catalog records supplied by the persistence layer.

These are read-only from the engine's point of view: materials, machines,
tools and processes are looked up by id (or, for processes, by name) and
never mutated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from machining_quoter.coerce import pick, to_float, to_int

ITEM_MATERIAL = "material"
ITEM_MACHINE = "machine"
ITEM_TOOL = "tool"
ITEM_TYPES = (ITEM_MATERIAL, ITEM_MACHINE, ITEM_TOOL)


def _property_value(properties: Any, *names: str) -> float | None:
    """Read ``{"Density": {"value": 2.7, "unit": "g/cm³"}}`` style properties."""

    if not isinstance(properties, Mapping):
        return None
    for name in names:
        entry = properties.get(name)
        if isinstance(entry, Mapping):
            number = to_float(entry.get("value"))
        else:
            number = to_float(entry)
        if number is not None:
            return number
    return None


@dataclass(frozen=True)
class Material:
    id: str
    name: str = ""
    category: str = ""
    density_g_cm3: float | None = None
    cost_per_kg: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Material":
        properties = raw.get("properties")
        density = to_float(pick(raw, "density_g_cm3", "densityGcm3", "density"))
        if density is None:
            density = _property_value(properties, "Density", "Density (g/cm³)")
        cost = to_float(pick(raw, "cost_per_kg", "costPerKg"))
        if cost is None:
            cost = _property_value(properties, "Cost Per Kg", "Cost Per Kg (USD)")
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            category=str(raw.get("category") or ""),
            density_g_cm3=density,
            cost_per_kg=cost,
        )


@dataclass(frozen=True)
class Machine:
    id: str
    name: str = ""
    machine_type: str = ""
    hourly_rate: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Machine":
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            machine_type=str(pick(raw, "machine_type", "machineType", default="")),
            hourly_rate=to_float(pick(raw, "hourly_rate", "hourlyRate")),
        )


@dataclass(frozen=True)
class Tool:
    """Cutting tool with the data needed for speeds, feeds and wear cost."""

    id: str
    name: str = ""
    tool_type: str = ""
    diameter: float | None = None
    number_of_teeth: int | None = None
    cutting_speed_vc: float | None = None
    feed_per_tooth: float | None = None
    price: float | None = None
    estimated_life_hours: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Tool":
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            tool_type=str(pick(raw, "tool_type", "toolType", default="")),
            diameter=to_float(raw.get("diameter")),
            number_of_teeth=to_int(pick(raw, "number_of_teeth", "numberOfTeeth", "teeth")),
            cutting_speed_vc=to_float(pick(raw, "cutting_speed_vc", "cuttingSpeedVc", "cutting_speed")),
            feed_per_tooth=to_float(pick(raw, "feed_per_tooth", "feedPerTooth")),
            price=to_float(raw.get("price")),
            estimated_life_hours=to_float(
                pick(raw, "estimated_life_hours", "estimatedLife", "estimated_life")
            ),
        )


@dataclass(frozen=True)
class ProcessParameter:
    name: str
    unit: str = ""
    label: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ProcessParameter":
        return cls(
            name=str(raw["name"]),
            unit=str(raw.get("unit") or ""),
            label=str(raw.get("label") or ""),
        )


@dataclass(frozen=True)
class Process:
    """A machining process with its declared inputs and a time formula in minutes."""

    id: str
    name: str
    group: str = ""
    formula: str = ""
    parameters: tuple[ProcessParameter, ...] = ()
    compatible_machine_types: tuple[str, ...] = ()

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(param.name for param in self.parameters)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Process":
        params_raw = raw.get("parameters") or ()
        parameters = tuple(
            ProcessParameter.from_dict(item)
            for item in params_raw
            if isinstance(item, Mapping) and item.get("name")
        )
        machine_types = pick(raw, "compatible_machine_types", "compatibleMachineTypes", default=())
        return cls(
            id=str(raw.get("id") or raw["name"]),
            name=str(raw["name"]),
            group=str(raw.get("group") or ""),
            formula=str(raw.get("formula") or ""),
            parameters=parameters,
            compatible_machine_types=tuple(str(item) for item in machine_types),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        stamp = value
    else:
        text = str(value or "").strip()
        if not text:
            return datetime.min.replace(tzinfo=timezone.utc)
        stamp = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


@dataclass(frozen=True)
class RegionCost:
    """A dated regional price override for a material, machine or tool."""

    item_id: str
    item_type: str
    region: str
    price: float
    currency: str = "USD"
    valid_from: datetime = field(default_factory=lambda: datetime.min.replace(tzinfo=timezone.utc))

    def __post_init__(self) -> None:
        if self.item_type not in ITEM_TYPES:
            raise ValueError(f"Unknown region cost item type: {self.item_type!r}")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RegionCost":
        price = to_float(raw.get("price"))
        if price is None:
            raise ValueError(f"Region cost for {raw.get('item_id')!r} has no numeric price")
        return cls(
            item_id=str(pick(raw, "item_id", "itemId")),
            item_type=str(pick(raw, "item_type", "itemType")),
            region=str(raw.get("region") or "Default"),
            price=price,
            currency=str(raw.get("currency") or "USD").upper(),
            valid_from=_parse_timestamp(pick(raw, "valid_from", "validFrom")),
        )



@dataclass(frozen=True)
class UnitCosts:
    """Concrete prices in the quote currency, resolved by the caller.

    The engine is currency-agnostic: whatever numbers arrive here are used
    as-is. Machines and tools without an entry are priced at zero.
    """

    currency: str = "USD"
    material_cost_per_kg: float | None = None
    machine_hourly_rates: Mapping[str, float] = field(default_factory=dict)
    tool_prices: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "machine_hourly_rates", MappingProxyType(dict(self.machine_hourly_rates)))
        object.__setattr__(self, "tool_prices", MappingProxyType(dict(self.tool_prices)))


__all__ = [
    "ITEM_MACHINE",
    "ITEM_MATERIAL",
    "ITEM_TOOL",
    "ITEM_TYPES",
    "Machine",
    "Material",
    "Process",
    "ProcessParameter",
    "RegionCost",
    "Tool",
    "UnitCosts",
]
