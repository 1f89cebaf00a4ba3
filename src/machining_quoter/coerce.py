"""Utility helpers for tolerant numeric coercion."""
from __future__ import annotations

import math
from typing import Any, Mapping


def to_float(value: Any) -> float | None:
    """Best-effort conversion of ``value`` to a finite float.

    ``None``, blank strings, booleans, unparsable text and non-finite numbers
    all map to ``None`` so callers can decide on a default.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None

    try:
        number = float(value)
    except (TypeError, ValueError):
        return None

    return number if math.isfinite(number) else None


def to_int(value: Any) -> int | None:
    """Best-effort conversion of ``value`` to an integer via rounding."""

    number = to_float(value)
    if number is None:
        return None
    return int(round(number))


def finite_or_zero(value: float) -> float:
    """Return ``value`` unless it is NaN or infinite, in which case ``0.0``."""

    return value if math.isfinite(value) else 0.0


def pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present, non-``None`` value among ``keys``.

    Inputs arrive from both the JSON document store (camelCase) and Python
    callers (snake_case), so readers accept either spelling.
    """

    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


__all__ = ["finite_or_zero", "pick", "to_float", "to_int"]
