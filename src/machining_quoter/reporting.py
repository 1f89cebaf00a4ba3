"""Tabular views of a :class:`MachiningResult` for presentation and export."""
from __future__ import annotations

import pandas as pd

from machining_quoter.domain import MachiningResult

OPERATION_COLUMNS = [
    "setup_id",
    "operation_id",
    "process_name",
    "process_id",
    "tool_id",
    "machine_name",
    "time_min",
    "tool_change_time_min",
    "formula_failed",
]

SETUP_COLUMNS = [
    "setup_id",
    "machine_id",
    "machine_name",
    "cutting_time_min",
    "tool_change_time_min",
    "setup_time_min",
    "batch_setup_time_min",
    "total_time_min",
]

COST_COLUMNS = ["item", "amount"]


def operations_frame(result: MachiningResult) -> pd.DataFrame:
    """One row per operation, per-part minutes after efficiency."""

    rows = [row.to_dict() for row in result.operation_time_breakdown]
    return pd.DataFrame(rows, columns=OPERATION_COLUMNS)


def setups_frame(result: MachiningResult) -> pd.DataFrame:
    rows = [row.to_dict() for row in result.setup_time_breakdown]
    return pd.DataFrame(rows, columns=SETUP_COLUMNS)


def cost_frame(result: MachiningResult) -> pd.DataFrame:
    """Batch cost lines from material through the markup cascade to the total.

    The ``amount`` column of every line except the last sums to the total.
    """

    lines: list[tuple[str, float]] = [
        ("material", result.material_cost),
        ("heat_treatment", result.heat_treatment_cost),
        ("surface_treatment", result.surface_treatment_cost),
        ("machining", result.machining_cost),
        ("tooling", result.tool_cost),
    ]
    lines.extend((f"markup_{name}", amount) for name, amount in result.markup_costs.as_dict().items())
    lines.append(("total", result.total_cost))
    return pd.DataFrame(lines, columns=COST_COLUMNS)


def summary(result: MachiningResult) -> dict[str, float | str]:
    return {
        "currency": result.currency,
        "batch_volume": result.batch_volume,
        "raw_material_weight_kg": result.raw_material_weight_kg,
        "cycle_time_per_part_min": result.cycle_time_per_part_min,
        "total_machine_time_hours": result.total_machine_time_hours,
        "subtotal": result.subtotal,
        "total_cost": result.total_cost,
        "cost_per_part": result.cost_per_part,
    }


def render_text(result: MachiningResult) -> str:
    """Plain-text report used by the command line ``--table`` option."""

    parts = [
        "Summary",
        pd.Series(summary(result)).to_string(),
        "",
        "Operations (per part, min)",
        operations_frame(result).to_string(index=False),
        "",
        "Setups (per part, min)",
        setups_frame(result).to_string(index=False),
        "",
        f"Costs ({result.currency}, batch)",
        cost_frame(result).to_string(index=False, float_format=lambda value: f"{value:,.2f}"),
    ]
    if result.formula_errors:
        parts.extend(["", "Formula errors"])
        parts.extend(f"  {error}" for error in result.formula_errors)
    if result.missing_data:
        parts.extend(["", "Defaulted fields"])
        parts.extend(f"  {warning}" for warning in result.missing_data)
    return "\n".join(parts)


__all__ = [
    "COST_COLUMNS",
    "OPERATION_COLUMNS",
    "SETUP_COLUMNS",
    "cost_frame",
    "operations_frame",
    "render_text",
    "setups_frame",
    "summary",
]
