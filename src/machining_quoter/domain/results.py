"""Computed output of a machining cost calculation."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from machining_quoter.domain.inputs import MARKUP_ORDER
from machining_quoter.errors import CalculationError, FormulaError, MissingDataWarning


@dataclass(frozen=True)
class Weights:
    raw_material_weight_kg: float
    finished_part_weight_kg: float
    source: str = "input"


@dataclass(frozen=True)
class OperationTime:
    """Per-part time for one operation, in setup then operation order."""

    operation_id: str
    setup_id: str
    process_name: str
    process_id: str | None = None
    tool_id: str | None = None
    machine_name: str | None = None
    time_min: float = 0.0
    tool_change_time_min: float = 0.0
    formula_failed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {spec.name: getattr(self, spec.name) for spec in fields(self)}


@dataclass(frozen=True)
class SetupTime:
    """Per-part time spent on one setup's machine."""

    setup_id: str
    machine_id: str | None = None
    machine_name: str | None = None
    cutting_time_min: float = 0.0
    tool_change_time_min: float = 0.0
    setup_time_min: float = 0.0
    batch_setup_time_min: float = 0.0

    @property
    def total_time_min(self) -> float:
        return self.cutting_time_min + self.tool_change_time_min + self.setup_time_min

    def to_dict(self) -> dict[str, Any]:
        data = {spec.name: getattr(self, spec.name) for spec in fields(self)}
        data["total_time_min"] = self.total_time_min
        return data


@dataclass(frozen=True)
class TimeTotals:
    """Aggregated per-part durations. Setup time is already amortized."""

    batch_volume: float
    cutting_time_min: float = 0.0
    setup_time_min: float = 0.0
    tool_change_time_min: float = 0.0
    batch_setup_time_min: float = 0.0

    @property
    def cycle_time_per_part_min(self) -> float:
        return self.cutting_time_min + self.setup_time_min + self.tool_change_time_min

    @property
    def total_machine_time_hours(self) -> float:
        return self.cycle_time_per_part_min * self.batch_volume / 60.0


@dataclass(frozen=True)
class TimeBreakdown:
    operations: tuple[OperationTime, ...]
    setups: tuple[SetupTime, ...]
    totals: TimeTotals
    formula_errors: tuple[FormulaError, ...] = ()
    missing_data: tuple[MissingDataWarning, ...] = ()


@dataclass(frozen=True)
class MarkupCosts:
    """Batch-level amount added by each markup step."""

    general: float = 0.0
    admin: float = 0.0
    sales: float = 0.0
    miscellaneous: float = 0.0
    packing: float = 0.0
    transport: float = 0.0
    profit: float = 0.0
    duty: float = 0.0

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in MARKUP_ORDER)

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in MARKUP_ORDER}


@dataclass(frozen=True)
class MachiningResult:
    """Immutable result of one calculation run over an input snapshot.

    Cost figures are batch totals in the input currency; times in the
    breakdown are per part.
    """

    currency: str
    batch_volume: float
    raw_material_weight_kg: float
    finished_part_weight_kg: float
    weight_source: str
    material_cost_per_kg: float
    total_material_cost_per_kg: float
    raw_material_part_cost: float
    material_cost: float
    heat_treatment_cost: float
    surface_treatment_cost: float
    material_related_cost: float
    machining_cost: float
    tool_cost: float
    subtotal: float
    operation_time_breakdown: tuple[OperationTime, ...]
    setup_time_breakdown: tuple[SetupTime, ...]
    total_cutting_time_min: float
    total_setup_time_min: float
    total_tool_change_time_min: float
    cycle_time_per_part_min: float
    total_machine_time_hours: float
    markup_costs: MarkupCosts
    total_cost: float
    cost_per_part: float
    formula_errors: tuple[FormulaError, ...] = ()
    missing_data: tuple[MissingDataWarning, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialise to plain Python structures for storage next to the input."""

        data: dict[str, Any] = {}
        for spec in fields(self):
            value = getattr(self, spec.name)
            if spec.name in {"operation_time_breakdown", "setup_time_breakdown"}:
                value = [item.to_dict() for item in value]
            elif spec.name == "markup_costs":
                value = value.as_dict()
            elif spec.name == "formula_errors":
                value = [
                    {"process_id": err.process_id, "reason": err.reason, "formula": err.formula}
                    for err in value
                ]
            elif spec.name == "missing_data":
                value = [
                    {"field": item.field_name, "entity_id": item.entity_id, "default": item.default}
                    for item in value
                ]
            data[spec.name] = value
        return data


@dataclass(frozen=True)
class CalculationOutcome:
    """Either a result or the reason no result could be produced."""

    result: MachiningResult | None = None
    error: CalculationError | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("CalculationOutcome needs exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.result is not None

    @property
    def reason(self) -> str | None:
        return None if self.error is None else str(self.error)


__all__ = [
    "CalculationOutcome",
    "MachiningResult",
    "MarkupCosts",
    "OperationTime",
    "SetupTime",
    "TimeBreakdown",
    "TimeTotals",
    "Weights",
]
