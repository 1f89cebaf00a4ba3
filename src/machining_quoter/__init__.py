"""Machining cost and cycle-time calculation engine."""
from __future__ import annotations

from machining_quoter.catalogs import ReferenceCatalog, default_catalog, load_catalog_dir, load_region_costs
from machining_quoter.domain import Calculation, CalculationOutcome, MachiningInput, MachiningResult
from machining_quoter.errors import (
    CalculationError,
    FormulaError,
    MachiningQuoterError,
    MissingDataWarning,
    ValidationError,
)
from machining_quoter.pricing import calculate_machining_costs, recompute_calculation, run_calculation

__version__ = "0.1.0"

__all__ = [
    "Calculation",
    "CalculationError",
    "CalculationOutcome",
    "FormulaError",
    "MachiningInput",
    "MachiningQuoterError",
    "MachiningResult",
    "MissingDataWarning",
    "ReferenceCatalog",
    "ValidationError",
    "__version__",
    "calculate_machining_costs",
    "default_catalog",
    "load_catalog_dir",
    "load_region_costs",
    "recompute_calculation",
    "run_calculation",
]
