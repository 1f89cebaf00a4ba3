"""Per-part cycle time across every setup and operation.

Setup time is a one-off per batch and is amortized over ``batch_volume``.
Cutting and tool-change time recur on every part and are never divided by
the batch, except for operations whose tool change is shared across the
whole batch. All three are stretched by ``1 / efficiency``.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from machining_quoter.config import EngineSettings, load_engine_settings
from machining_quoter.domain import (
    Machine,
    Operation,
    OperationTime,
    Process,
    Setup,
    SetupTime,
    TimeBreakdown,
    TimeTotals,
    Tool,
)
from machining_quoter.errors import FormulaError, MissingDataWarning, ValidationError
from machining_quoter.formula import compile_formula

from .parameters import resolve_environment

logger = logging.getLogger(__name__)


def _efficiency(setup: Setup, settings: EngineSettings, missing: list[MissingDataWarning]) -> float:
    if setup.efficiency is None:
        missing.append(MissingDataWarning("efficiency", entity_id=setup.id, default=1.0))
        return 1.0
    return max(setup.efficiency, settings.efficiency_epsilon)


def _optional(value: float | None, field_name: str, owner: str, missing: list[MissingDataWarning]) -> float:
    if value is None:
        missing.append(MissingDataWarning(field_name, entity_id=owner))
        return 0.0
    return value


def operation_minutes(
    operation: Operation,
    process: Process,
    tool: Tool | None,
    *,
    settings: EngineSettings,
    missing: list[MissingDataWarning],
) -> float:
    """Evaluate the process formula for one part, before efficiency.

    Raises :class:`FormulaError` when the formula does not compile.
    """

    if not process.formula.strip():
        missing.append(MissingDataWarning("formula", entity_id=process.id))
        return 0.0

    compiled = compile_formula(process.formula, process_id=process.id, settings=settings)
    resolved = resolve_environment(operation, process, tool)
    missing.extend(resolved.missing)
    return compiled.evaluate(resolved.values)


def aggregate(
    setups: Iterable[Setup],
    processes_by_name: Mapping[str, Process],
    tools_by_id: Mapping[str, Tool],
    batch_volume: float,
    *,
    machines_by_id: Mapping[str, Machine] | None = None,
    settings: EngineSettings | None = None,
) -> TimeBreakdown:
    """Return the per-operation and per-setup time breakdown with totals.

    Operation rows keep setup then operation declaration order. A formula that
    fails to compile contributes ``0`` minutes and is reported on the result.
    """

    if not math.isfinite(batch_volume) or batch_volume <= 0:
        raise ValidationError("Batch volume must be greater than zero")

    settings = settings or load_engine_settings()
    machines = machines_by_id or {}

    operations: list[OperationTime] = []
    setup_rows: list[SetupTime] = []
    errors: list[FormulaError] = []
    missing: list[MissingDataWarning] = []

    for setup in setups:
        machine = None
        if setup.machine_id is not None:
            machine = machines.get(setup.machine_id)
            if machine is None and machines_by_id is not None:
                raise ValidationError(f"Setup {setup.id} references an unknown machine", entity_id=setup.machine_id)

        efficiency = _efficiency(setup, settings, missing)
        per_setup = _optional(setup.time_per_setup_min, "time_per_setup_min", setup.id, missing)
        change_min = _optional(setup.tool_change_time_sec, "tool_change_time_sec", setup.id, missing) / 60.0
        machine_name = machine.name if machine else None

        cutting = 0.0
        tool_change = 0.0
        for operation in setup.operations:
            process = processes_by_name.get(operation.process_name)
            if process is None:
                raise ValidationError(
                    f"Operation {operation.id} references an unknown process",
                    entity_id=operation.process_name,
                )
            tool = None
            if operation.tool_id is not None:
                tool = tools_by_id.get(operation.tool_id)
                if tool is None:
                    raise ValidationError(
                        f"Operation {operation.id} references an unknown tool",
                        entity_id=operation.tool_id,
                    )

            failed = False
            try:
                raw_minutes = operation_minutes(operation, process, tool, settings=settings, missing=missing)
            except FormulaError as exc:
                logger.warning(
                    "Formula for process %s failed (%s); using 0 minutes. Formula: %s",
                    process.id,
                    exc.reason,
                    process.formula,
                )
                errors.append(exc)
                raw_minutes = 0.0
                failed = True

            minutes = raw_minutes / efficiency
            change = change_min / efficiency
            if operation.shared_tool_change:
                change /= batch_volume

            cutting += minutes
            tool_change += change
            operations.append(
                OperationTime(
                    operation_id=operation.id,
                    setup_id=setup.id,
                    process_name=operation.process_name,
                    process_id=process.id,
                    tool_id=operation.tool_id,
                    machine_name=machine_name,
                    time_min=minutes,
                    tool_change_time_min=change,
                    formula_failed=failed,
                )
            )

        batch_setup = per_setup / efficiency
        setup_rows.append(
            SetupTime(
                setup_id=setup.id,
                machine_id=setup.machine_id,
                machine_name=machine_name,
                cutting_time_min=cutting,
                tool_change_time_min=tool_change,
                setup_time_min=batch_setup / batch_volume,
                batch_setup_time_min=batch_setup,
            )
        )

    totals = TimeTotals(
        batch_volume=batch_volume,
        cutting_time_min=sum(row.cutting_time_min for row in setup_rows),
        setup_time_min=sum(row.setup_time_min for row in setup_rows),
        tool_change_time_min=sum(row.tool_change_time_min for row in setup_rows),
        batch_setup_time_min=sum(row.batch_setup_time_min for row in setup_rows),
    )
    for warning in missing:
        logger.debug("%s", warning)

    return TimeBreakdown(
        operations=tuple(operations),
        setups=tuple(setup_rows),
        totals=totals,
        formula_errors=tuple(dict.fromkeys(errors)),
        missing_data=tuple(dict.fromkeys(missing)),
    )


__all__ = ["aggregate", "operation_minutes"]
