"""Part specification supplied to the calculation engine."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping

from machining_quoter.coerce import pick, to_float

RAW_MATERIAL_PROCESSES = ("Billet", "Casting", "Forging", "3D Printing", "Other")

BILLET_SHAPES = (
    "Block",
    "Cylinder",
    "Tube",
    "Rectangle Tube",
    "Plate",
    "Bar",
    "Rod",
    "Cube",
)

UNIT_PER_KG = "per_kg"
UNIT_PER_AREA = "per_area"
BASIS_RAW = "raw_weight"
BASIS_FINISHED = "finished_weight"

# Fixed application order of the markup cascade.
MARKUP_ORDER = (
    "general",
    "admin",
    "sales",
    "miscellaneous",
    "packing",
    "transport",
    "profit",
    "duty",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class BilletShapeParameters:
    """Raw stock dimensions in millimetres. Unused fields stay ``None``."""

    length: float | None = None
    width: float | None = None
    height: float | None = None
    diameter: float | None = None
    outer_diameter: float | None = None
    inner_diameter: float | None = None
    side: float | None = None
    wall_thickness: float | None = None
    outer_width: float | None = None
    outer_height: float | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "BilletShapeParameters":
        if not raw:
            return cls()
        kwargs = {spec.name: to_float(pick(raw, spec.name, _camel(spec.name))) for spec in fields(cls)}
        return cls(**kwargs)

    def to_dict(self) -> dict[str, float]:
        return {spec.name: getattr(self, spec.name) for spec in fields(self) if getattr(self, spec.name) is not None}


@dataclass(frozen=True)
class SurfaceTreatment:
    id: str
    name: str = ""
    cost: float | None = None
    unit: str = UNIT_PER_KG
    based_on: str = BASIS_FINISHED

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SurfaceTreatment":
        return cls(
            id=str(raw.get("id") or raw.get("name") or "treatment"),
            name=str(raw.get("name") or ""),
            cost=to_float(raw.get("cost")),
            unit=str(raw.get("unit") or UNIT_PER_KG),
            based_on=str(pick(raw, "based_on", "basedOn", default=BASIS_FINISHED)),
        )


@dataclass(frozen=True)
class Markups:
    """Percentage surcharges, each expressed as a percent (``20`` means 20 %)."""

    general: float = 0.0
    admin: float = 0.0
    sales: float = 0.0
    miscellaneous: float = 0.0
    packing: float = 0.0
    transport: float = 0.0
    profit: float = 0.0
    duty: float = 0.0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "Markups":
        if not raw:
            return cls()
        return cls(**{name: to_float(raw.get(name)) or 0.0 for name in MARKUP_ORDER})

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in MARKUP_ORDER}


@dataclass(frozen=True)
class Operation:
    """One process instance in a setup, bound to a tool and parameter values.

    ``shared_tool_change`` marks an operation whose tool change happens once
    for the whole batch instead of once per part.
    """

    id: str
    process_name: str
    tool_id: str | None = None
    parameters: Mapping[str, float] = field(default_factory=dict)
    shared_tool_change: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Operation":
        params: dict[str, float] = {}
        for key, value in (raw.get("parameters") or {}).items():
            number = to_float(value)
            if number is not None:
                params[str(key)] = number
        tool_id = pick(raw, "tool_id", "toolId")
        return cls(
            id=str(raw["id"]),
            process_name=str(pick(raw, "process_name", "processName")),
            tool_id=str(tool_id) if tool_id not in (None, "") else None,
            parameters=params,
            shared_tool_change=bool(pick(raw, "shared_tool_change", "sharedToolChange", default=False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "process_name": self.process_name,
            "tool_id": self.tool_id,
            "parameters": dict(self.parameters),
            "shared_tool_change": self.shared_tool_change,
        }


@dataclass(frozen=True)
class Setup:
    """One fixture/machine session owning an ordered list of operations."""

    id: str
    name: str = ""
    operations: tuple[Operation, ...] = ()
    time_per_setup_min: float | None = None
    tool_change_time_sec: float | None = None
    efficiency: float | None = 1.0
    machine_id: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Setup":
        machine_id = pick(raw, "machine_id", "machineId")
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            operations=tuple(Operation.from_dict(item) for item in raw.get("operations") or ()),
            time_per_setup_min=to_float(pick(raw, "time_per_setup_min", "timePerSetupMin")),
            tool_change_time_sec=to_float(pick(raw, "tool_change_time_sec", "toolChangeTimeSec")),
            efficiency=to_float(raw.get("efficiency")),
            machine_id=str(machine_id) if machine_id not in (None, "") else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "operations": [op.to_dict() for op in self.operations],
            "time_per_setup_min": self.time_per_setup_min,
            "tool_change_time_sec": self.tool_change_time_sec,
            "efficiency": self.efficiency,
            "machine_id": self.machine_id,
        }


@dataclass(frozen=True)
class MachiningInput:
    """Complete snapshot of a part to be quoted."""

    id: str
    batch_volume: float
    part_number: str = ""
    part_name: str = ""
    revision: str = ""
    calculation_number: str = ""
    annual_volume: float = 0.0
    unit_system: str = "Metric"
    currency: str = "USD"
    region: str = "Default"
    material_category: str = ""
    material_type: str = ""
    raw_material_process: str = "Billet"
    billet_shape: str | None = None
    billet_shape_parameters: BilletShapeParameters = field(default_factory=BilletShapeParameters)
    raw_material_weight_kg: float = 0.0
    finished_part_weight_kg: float = 0.0
    part_surface_area_m2: float = 0.0
    material_cost_per_kg: float | None = None
    material_density_g_cm3: float | None = None
    transport_cost_per_kg: float | None = None
    heat_treatment_cost_per_kg: float | None = None
    heat_treatment_basis: str = BASIS_RAW
    surface_treatments: tuple[SurfaceTreatment, ...] = ()
    setups: tuple[Setup, ...] = ()
    markups: Markups = field(default_factory=Markups)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "MachiningInput":
        """Build an input snapshot from a stored calculation document."""

        if not isinstance(raw, Mapping):
            raise TypeError("MachiningInput.from_dict expects a mapping of field values")

        def number(*keys: str, default: float = 0.0) -> float:
            value = to_float(pick(raw, *keys))
            return default if value is None else value

        billet_shape = pick(raw, "billet_shape", "billetShape")
        return cls(
            id=str(raw.get("id") or ""),
            batch_volume=number("batch_volume", "batchVolume"),
            part_number=str(pick(raw, "part_number", "partNumber", default="")),
            part_name=str(pick(raw, "part_name", "partName", default="")),
            revision=str(raw.get("revision") or ""),
            calculation_number=str(pick(raw, "calculation_number", "calculationNumber", default="")),
            annual_volume=number("annual_volume", "annualVolume"),
            unit_system=str(pick(raw, "unit_system", "unitSystem", default="Metric")),
            currency=str(raw.get("currency") or "USD").upper(),
            region=str(raw.get("region") or "Default"),
            material_category=str(pick(raw, "material_category", "materialCategory", default="")),
            material_type=str(pick(raw, "material_type", "materialType", default="")),
            raw_material_process=str(pick(raw, "raw_material_process", "rawMaterialProcess", default="Billet")),
            billet_shape=str(billet_shape) if billet_shape else None,
            billet_shape_parameters=BilletShapeParameters.from_dict(
                pick(raw, "billet_shape_parameters", "billetShapeParameters")
            ),
            raw_material_weight_kg=number("raw_material_weight_kg", "rawMaterialWeightKg"),
            finished_part_weight_kg=number("finished_part_weight_kg", "finishedPartWeightKg"),
            part_surface_area_m2=number("part_surface_area_m2", "partSurfaceAreaM2"),
            material_cost_per_kg=to_float(pick(raw, "material_cost_per_kg", "materialCostPerKg")),
            material_density_g_cm3=to_float(pick(raw, "material_density_g_cm3", "materialDensityGcm3")),
            transport_cost_per_kg=to_float(pick(raw, "transport_cost_per_kg", "transportCostPerKg")),
            heat_treatment_cost_per_kg=to_float(
                pick(raw, "heat_treatment_cost_per_kg", "heatTreatmentCostPerKg")
            ),
            heat_treatment_basis=str(pick(raw, "heat_treatment_basis", "heatTreatmentBasis", default=BASIS_RAW)),
            surface_treatments=tuple(
                SurfaceTreatment.from_dict(item)
                for item in pick(raw, "surface_treatments", "surfaceTreatments", default=())
            ),
            setups=tuple(Setup.from_dict(item) for item in raw.get("setups") or ()),
            markups=Markups.from_dict(raw.get("markups")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for spec in fields(self):
            value = getattr(self, spec.name)
            if spec.name == "billet_shape_parameters":
                value = value.to_dict()
            elif spec.name == "surface_treatments":
                value = [
                    {"id": t.id, "name": t.name, "cost": t.cost, "unit": t.unit, "based_on": t.based_on}
                    for t in value
                ]
            elif spec.name == "setups":
                value = [setup.to_dict() for setup in value]
            elif spec.name == "markups":
                value = value.as_dict()
            data[spec.name] = value
        return data


__all__ = [
    "BASIS_FINISHED",
    "BASIS_RAW",
    "BILLET_SHAPES",
    "BilletShapeParameters",
    "MARKUP_ORDER",
    "MachiningInput",
    "Markups",
    "Operation",
    "RAW_MATERIAL_PROCESSES",
    "Setup",
    "SurfaceTreatment",
    "UNIT_PER_AREA",
    "UNIT_PER_KG",
]
