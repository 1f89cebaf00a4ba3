"""Combine weights, times and unit costs into a :class:`MachiningResult`.

Costs are batch totals in the currency of the supplied unit costs. Absent
optional costs count as zero and are listed on ``missing_data``; only a
non-positive batch volume is refused here.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from machining_quoter.domain import (
    BASIS_FINISHED,
    BASIS_RAW,
    UNIT_PER_AREA,
    UNIT_PER_KG,
    MachiningResult,
    Markups,
    SurfaceTreatment,
    TimeBreakdown,
    Tool,
    UnitCosts,
    Weights,
)
from machining_quoter.errors import MissingDataWarning, ValidationError

from .markups import apply_markup_cascade

logger = logging.getLogger(__name__)


def _or_zero(
    value: float | None,
    field_name: str,
    missing: list[MissingDataWarning],
    owner: str | None = None,
) -> float:
    if value is None:
        missing.append(MissingDataWarning(field_name, entity_id=owner))
        return 0.0
    return value


def _basis_weight(basis: str, weights: Weights) -> float:
    if basis == BASIS_RAW:
        return weights.raw_material_weight_kg
    return weights.finished_part_weight_kg


def surface_treatment_cost_per_part(
    treatments: Iterable[SurfaceTreatment],
    weights: Weights,
    part_surface_area_m2: float,
    missing: list[MissingDataWarning],
) -> float:
    total = 0.0
    for treatment in treatments:
        cost = _or_zero(treatment.cost, "cost", missing, treatment.id)
        if treatment.unit == UNIT_PER_KG:
            total += cost * _basis_weight(treatment.based_on, weights)
        elif treatment.unit == UNIT_PER_AREA:
            total += cost * part_surface_area_m2
        else:
            logger.warning("Surface treatment %s has unknown unit %r; ignoring it", treatment.id, treatment.unit)
    return total


def machine_cost(time_breakdown: TimeBreakdown, unit_costs: UnitCosts, missing: list[MissingDataWarning]) -> float:
    """Hourly machine charge for every setup, per-part hours times the batch."""

    batch = time_breakdown.totals.batch_volume
    total = 0.0
    for setup in time_breakdown.setups:
        if setup.machine_id is None:
            continue
        rate = unit_costs.machine_hourly_rates.get(setup.machine_id)
        rate = _or_zero(rate, "hourly_rate", missing, setup.machine_id)
        total += setup.total_time_min / 60.0 * rate * batch
    return total


def tool_cost(
    time_breakdown: TimeBreakdown,
    unit_costs: UnitCosts,
    tools_by_id: Mapping[str, Tool],
    missing: list[MissingDataWarning],
) -> float:
    """Tool wear: price over life hours, charged for the hours each operation cuts."""

    batch = time_breakdown.totals.batch_volume
    total = 0.0
    for row in time_breakdown.operations:
        if row.tool_id is None:
            continue
        price = _or_zero(unit_costs.tool_prices.get(row.tool_id), "price", missing, row.tool_id)
        tool = tools_by_id.get(row.tool_id)
        life = tool.estimated_life_hours if tool else None
        if life is None:
            missing.append(MissingDataWarning("estimated_life_hours", entity_id=row.tool_id))
            continue
        if life <= 0 or price <= 0:
            continue
        total += price / life * (row.time_min / 60.0) * batch
    return total


def compute(
    weights: Weights,
    time_breakdown: TimeBreakdown,
    unit_costs: UnitCosts,
    treatments: Iterable[SurfaceTreatment],
    markups: Markups,
    batch_volume: float,
    *,
    tools_by_id: Mapping[str, Tool] | None = None,
    transport_cost_per_kg: float | None = None,
    heat_treatment_cost_per_kg: float | None = None,
    heat_treatment_basis: str = BASIS_RAW,
    part_surface_area_m2: float = 0.0,
    missing_data: Iterable[MissingDataWarning] = (),
) -> MachiningResult:
    """Build the final result for one calculation run."""

    if not math.isfinite(batch_volume) or batch_volume <= 0:
        raise ValidationError("Batch volume must be greater than zero")

    missing = list(missing_data)
    missing.extend(time_breakdown.missing_data)

    material_per_kg = _or_zero(unit_costs.material_cost_per_kg, "material_cost_per_kg", missing)
    transport_per_kg = _or_zero(transport_cost_per_kg, "transport_cost_per_kg", missing)
    heat_per_kg = _or_zero(heat_treatment_cost_per_kg, "heat_treatment_cost_per_kg", missing)

    raw_kg = weights.raw_material_weight_kg
    total_material_per_kg = material_per_kg + transport_per_kg
    raw_material_part_cost = raw_kg * total_material_per_kg
    material = raw_material_part_cost * batch_volume

    heat_basis = BASIS_FINISHED if heat_treatment_basis == BASIS_FINISHED else BASIS_RAW
    heat_treatment = heat_per_kg * _basis_weight(heat_basis, weights) * batch_volume
    surface_treatment = (
        surface_treatment_cost_per_part(treatments, weights, part_surface_area_m2, missing) * batch_volume
    )
    material_related = material + heat_treatment + surface_treatment

    machining = machine_cost(time_breakdown, unit_costs, missing)
    tooling = tool_cost(time_breakdown, unit_costs, tools_by_id or {}, missing)
    base_cost = material + heat_treatment + machining + tooling
    subtotal = material_related + machining + tooling

    markup_costs, total = apply_markup_cascade(
        base_cost,
        markups,
        surface_treatment_cost=surface_treatment,
    )

    totals = time_breakdown.totals
    missing_unique = tuple(dict.fromkeys(missing))
    for warning in missing_unique:
        logger.debug("%s", warning)

    return MachiningResult(
        currency=unit_costs.currency,
        batch_volume=batch_volume,
        raw_material_weight_kg=raw_kg,
        finished_part_weight_kg=weights.finished_part_weight_kg,
        weight_source=weights.source,
        material_cost_per_kg=material_per_kg,
        total_material_cost_per_kg=total_material_per_kg,
        raw_material_part_cost=raw_material_part_cost,
        material_cost=material,
        heat_treatment_cost=heat_treatment,
        surface_treatment_cost=surface_treatment,
        material_related_cost=material_related,
        machining_cost=machining,
        tool_cost=tooling,
        subtotal=subtotal,
        operation_time_breakdown=time_breakdown.operations,
        setup_time_breakdown=time_breakdown.setups,
        total_cutting_time_min=totals.cutting_time_min,
        total_setup_time_min=totals.setup_time_min,
        total_tool_change_time_min=totals.tool_change_time_min,
        cycle_time_per_part_min=totals.cycle_time_per_part_min,
        total_machine_time_hours=totals.total_machine_time_hours,
        markup_costs=markup_costs,
        total_cost=total,
        cost_per_part=total / batch_volume,
        formula_errors=time_breakdown.formula_errors,
        missing_data=missing_unique,
    )


__all__ = ["compute", "machine_cost", "surface_treatment_cost_per_part", "tool_cost"]
