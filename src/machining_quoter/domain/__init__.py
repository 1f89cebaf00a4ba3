"""Domain records for the machining cost engine."""
from __future__ import annotations

from .calculation import STATUS_DRAFT, STATUS_FINAL, Calculation
from .inputs import (
    BASIS_FINISHED,
    BASIS_RAW,
    BILLET_SHAPES,
    MARKUP_ORDER,
    RAW_MATERIAL_PROCESSES,
    UNIT_PER_AREA,
    UNIT_PER_KG,
    BilletShapeParameters,
    MachiningInput,
    Markups,
    Operation,
    Setup,
    SurfaceTreatment,
)
from .reference import (
    ITEM_MACHINE,
    ITEM_MATERIAL,
    ITEM_TOOL,
    Machine,
    Material,
    Process,
    ProcessParameter,
    RegionCost,
    Tool,
    UnitCosts,
)
from .results import (
    CalculationOutcome,
    MachiningResult,
    MarkupCosts,
    OperationTime,
    SetupTime,
    TimeBreakdown,
    TimeTotals,
    Weights,
)

__all__ = [
    "BASIS_FINISHED",
    "BASIS_RAW",
    "BILLET_SHAPES",
    "BilletShapeParameters",
    "Calculation",
    "CalculationOutcome",
    "ITEM_MACHINE",
    "ITEM_MATERIAL",
    "ITEM_TOOL",
    "MARKUP_ORDER",
    "Machine",
    "MachiningInput",
    "MachiningResult",
    "MarkupCosts",
    "Markups",
    "Material",
    "Operation",
    "OperationTime",
    "Process",
    "ProcessParameter",
    "RAW_MATERIAL_PROCESSES",
    "RegionCost",
    "STATUS_DRAFT",
    "STATUS_FINAL",
    "Setup",
    "SetupTime",
    "SurfaceTreatment",
    "TimeBreakdown",
    "TimeTotals",
    "Tool",
    "UNIT_PER_AREA",
    "UNIT_PER_KG",
    "UnitCosts",
    "Weights",
]
