"""Calculation entry points: validate, weigh, time, cost.

``calculate_machining_costs`` raises :class:`CalculationError` for
structural problems; ``run_calculation`` turns that into a
:class:`CalculationOutcome` so callers can tell "failed to compute" from
"computed to zero" without a try block.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable

from machining_quoter.catalogs import ReferenceCatalog, default_catalog
from machining_quoter.config import EngineSettings, load_engine_settings
from machining_quoter.domain import (
    BILLET_SHAPES,
    Calculation,
    CalculationOutcome,
    MachiningInput,
    MachiningResult,
    RegionCost,
    UnitCosts,
)
from machining_quoter.errors import CalculationError, ValidationError

from .cost_aggregator import compute
from .geometry import resolve_weights
from .regional import resolve_unit_costs
from .time_aggregator import aggregate

logger = logging.getLogger(__name__)


def _require_non_negative(value: float, label: str, entity_id: str | None) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{label} must be a non-negative number", entity_id=entity_id)


def validate(inputs: MachiningInput, catalog: ReferenceCatalog) -> None:
    """Raise :class:`ValidationError` for the first structural problem found."""

    owner = inputs.id or None
    if not math.isfinite(inputs.batch_volume) or inputs.batch_volume <= 0:
        raise ValidationError("Batch volume must be greater than zero", entity_id=owner)

    _require_non_negative(inputs.raw_material_weight_kg, "Raw material weight", owner)
    _require_non_negative(inputs.finished_part_weight_kg, "Finished part weight", owner)
    _require_non_negative(inputs.part_surface_area_m2, "Part surface area", owner)

    if inputs.raw_material_process == "Billet" and inputs.billet_shape:
        if inputs.billet_shape not in BILLET_SHAPES:
            raise ValidationError("Unknown billet shape", entity_id=inputs.billet_shape)

    for setup in inputs.setups:
        if setup.efficiency is not None and not 0 < setup.efficiency <= 1:
            raise ValidationError("Setup efficiency must be in (0, 1]", entity_id=setup.id)
        if setup.time_per_setup_min is not None:
            _require_non_negative(setup.time_per_setup_min, "Setup time", setup.id)
        if setup.tool_change_time_sec is not None:
            _require_non_negative(setup.tool_change_time_sec, "Tool change time", setup.id)

        machine = None
        if setup.machine_id is not None:
            machine = catalog.machines.get(setup.machine_id)
            if machine is None:
                raise ValidationError(f"Setup {setup.id} references an unknown machine", entity_id=setup.machine_id)

        for operation in setup.operations:
            process = catalog.processes.get(operation.process_name)
            if process is None:
                raise ValidationError(
                    f"Operation {operation.id} references an unknown process",
                    entity_id=operation.process_name,
                )
            if operation.tool_id is not None and operation.tool_id not in catalog.tools:
                raise ValidationError(
                    f"Operation {operation.id} references an unknown tool",
                    entity_id=operation.tool_id,
                )
            if (
                machine is not None
                and process.compatible_machine_types
                and machine.machine_type not in process.compatible_machine_types
            ):
                logger.warning(
                    "Process %s is not listed for machine type %r (setup %s)",
                    process.name,
                    machine.machine_type,
                    setup.id,
                )


def calculate_machining_costs(
    inputs: MachiningInput,
    catalog: ReferenceCatalog | None = None,
    region_costs: Iterable[RegionCost] = (),
    *,
    unit_costs: UnitCosts | None = None,
    as_of: datetime | None = None,
    settings: EngineSettings | None = None,
) -> MachiningResult:
    """Compute the full result for one input snapshot.

    ``unit_costs`` skips regional resolution and prices the quote with the
    given numbers as-is.
    """

    settings = settings or load_engine_settings()
    catalog = catalog or default_catalog()
    validate(inputs, catalog)

    material = catalog.material(inputs.material_type)
    density = inputs.material_density_g_cm3
    if density is None and material is not None:
        density = material.density_g_cm3

    weights, weight_warnings = resolve_weights(inputs, density)
    breakdown = aggregate(
        inputs.setups,
        catalog.processes,
        catalog.tools,
        inputs.batch_volume,
        machines_by_id=catalog.machines,
        settings=settings,
    )
    if unit_costs is None:
        unit_costs = resolve_unit_costs(inputs, catalog, region_costs, as_of=as_of, settings=settings)

    result = compute(
        weights,
        breakdown,
        unit_costs,
        inputs.surface_treatments,
        inputs.markups,
        inputs.batch_volume,
        tools_by_id=catalog.tools,
        transport_cost_per_kg=inputs.transport_cost_per_kg,
        heat_treatment_cost_per_kg=inputs.heat_treatment_cost_per_kg,
        heat_treatment_basis=inputs.heat_treatment_basis,
        part_surface_area_m2=inputs.part_surface_area_m2,
        missing_data=weight_warnings,
    )
    logger.debug(
        "Calculation %s: total %.4f %s for %g parts",
        inputs.id or "<unsaved>",
        result.total_cost,
        result.currency,
        inputs.batch_volume,
    )
    return result


def run_calculation(
    inputs: MachiningInput,
    catalog: ReferenceCatalog | None = None,
    region_costs: Iterable[RegionCost] = (),
    *,
    unit_costs: UnitCosts | None = None,
    as_of: datetime | None = None,
    settings: EngineSettings | None = None,
) -> CalculationOutcome:
    """Like :func:`calculate_machining_costs` but never raises ``CalculationError``."""

    try:
        result = calculate_machining_costs(
            inputs,
            catalog,
            region_costs,
            unit_costs=unit_costs,
            as_of=as_of,
            settings=settings,
        )
    except CalculationError as exc:
        logger.info("Calculation %s unavailable: %s", inputs.id or "<unsaved>", exc)
        return CalculationOutcome(error=exc)
    return CalculationOutcome(result=result)


def recompute_calculation(
    calculation: Calculation,
    catalog: ReferenceCatalog | None = None,
    region_costs: Iterable[RegionCost] = (),
    *,
    as_of: datetime | None = None,
    settings: EngineSettings | None = None,
) -> CalculationOutcome:
    """Recompute a draft calculation from its input snapshot and store the outcome.

    Raises :class:`CalculationError` when the calculation is already final.
    """

    if calculation.is_final:
        raise CalculationError("Cannot recompute a finalized calculation", entity_id=calculation.id)
    outcome = run_calculation(calculation.inputs, catalog, region_costs, as_of=as_of, settings=settings)
    calculation.record(outcome)
    return outcome


__all__ = [
    "calculate_machining_costs",
    "recompute_calculation",
    "run_calculation",
    "validate",
]
