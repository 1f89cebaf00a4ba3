"""Time and cost calculation for machined parts."""
from __future__ import annotations

from .cost_aggregator import compute
from .engine import calculate_machining_costs, recompute_calculation, run_calculation, validate
from .geometry import billet_volume_mm3, compute_raw_weight, resolve_weights
from .markups import apply_markup_cascade
from .parameters import resolve, resolve_environment
from .regional import convert_currency, get_converted_price, resolve_unit_costs
from .time_aggregator import aggregate

__all__ = [
    "aggregate",
    "apply_markup_cascade",
    "billet_volume_mm3",
    "calculate_machining_costs",
    "compute",
    "compute_raw_weight",
    "convert_currency",
    "get_converted_price",
    "recompute_calculation",
    "resolve",
    "resolve_environment",
    "resolve_unit_costs",
    "resolve_weights",
    "run_calculation",
    "validate",
]
