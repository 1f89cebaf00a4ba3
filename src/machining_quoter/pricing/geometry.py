"""Raw stock mass from parametric billet geometry.

All dimensions are millimetres and densities g/cm³. Every function here is
total: incomplete or impossible geometry yields a weight of ``0`` instead of
raising, and the caller decides whether that deserves a warning.
"""
from __future__ import annotations

import logging
import math
from typing import Callable

from machining_quoter.domain import BilletShapeParameters, MachiningInput, Weights
from machining_quoter.errors import MissingDataWarning

logger = logging.getLogger(__name__)

MM3_PER_CM3 = 1000.0
GRAMS_PER_KG = 1000.0

SOURCE_GEOMETRY = "geometry"
SOURCE_INPUT = "input"


def _dims(*values: float | None) -> tuple[float, ...] | None:
    """Return the values when every one is a positive finite number."""

    if any(value is None or not math.isfinite(value) or value <= 0 for value in values):
        return None
    return tuple(float(value) for value in values)  # type: ignore[arg-type]


def _prism(p: BilletShapeParameters) -> float:
    dims = _dims(p.length, p.width, p.height)
    if dims is None:
        return 0.0
    length, width, height = dims
    return length * width * height


def _cylinder(p: BilletShapeParameters) -> float:
    dims = _dims(p.diameter, p.height)
    if dims is None:
        return 0.0
    diameter, height = dims
    return math.pi * (diameter / 2.0) ** 2 * height


def _tube(p: BilletShapeParameters) -> float:
    dims = _dims(p.outer_diameter, p.height)
    if dims is None:
        return 0.0
    outer, height = dims
    inner = p.inner_diameter or 0.0
    if not math.isfinite(inner) or inner < 0 or inner >= outer:
        return 0.0
    return math.pi * ((outer / 2.0) ** 2 - (inner / 2.0) ** 2) * height


def _rectangle_tube(p: BilletShapeParameters) -> float:
    dims = _dims(p.outer_width, p.outer_height, p.length, p.wall_thickness)
    if dims is None:
        return 0.0
    width, height, length, wall = dims
    if 2 * wall >= width or 2 * wall >= height:
        return 0.0
    inner_area = (width - 2 * wall) * (height - 2 * wall)
    return (width * height - inner_area) * length


def _cube(p: BilletShapeParameters) -> float:
    dims = _dims(p.side)
    if dims is None:
        return 0.0
    return dims[0] ** 3


VOLUME_MM3: dict[str, Callable[[BilletShapeParameters], float]] = {
    "Block": _prism,
    "Plate": _prism,
    "Bar": _prism,
    "Cylinder": _cylinder,
    "Rod": _cylinder,
    "Tube": _tube,
    "Rectangle Tube": _rectangle_tube,
    "Cube": _cube,
}


def billet_volume_mm3(shape: str | None, params: BilletShapeParameters | None) -> float:
    """Return the stock volume in mm³, ``0`` for unknown shapes or bad dimensions."""

    if not shape or params is None:
        return 0.0
    volume_fn = VOLUME_MM3.get(shape)
    if volume_fn is None:
        return 0.0
    volume = volume_fn(params)
    return volume if math.isfinite(volume) and volume > 0 else 0.0


def compute_raw_weight(
    shape: str | None,
    params: BilletShapeParameters | None,
    density_g_cm3: float | None,
) -> float:
    """Return the billet mass in kilograms (volume in cm³ times density, over 1000)."""

    if density_g_cm3 is None or not math.isfinite(density_g_cm3) or density_g_cm3 <= 0:
        return 0.0
    volume_cm3 = billet_volume_mm3(shape, params) / MM3_PER_CM3
    return volume_cm3 * density_g_cm3 / GRAMS_PER_KG


def resolve_weights(
    inputs: MachiningInput,
    density_g_cm3: float | None,
) -> tuple[Weights, tuple[MissingDataWarning, ...]]:
    """Pick the raw weight for a quote and report when geometry fell short.

    Billet stock with a shape and a density is weighed from its dimensions;
    everything else, and any geometry that weighs nothing, uses the supplied
    ``raw_material_weight_kg``. The finished weight is always taken as given.
    """

    finished = inputs.finished_part_weight_kg
    if inputs.raw_material_process == "Billet" and inputs.billet_shape:
        weight = compute_raw_weight(inputs.billet_shape, inputs.billet_shape_parameters, density_g_cm3)
        if weight > 0:
            return Weights(weight, finished, SOURCE_GEOMETRY), ()

        field_name = "material_density_g_cm3" if not density_g_cm3 else "billet_shape_parameters"
        warning = MissingDataWarning(
            field_name,
            entity_id=inputs.id or None,
            default=inputs.raw_material_weight_kg,
        )
        logger.debug("Billet %s could not be weighed: %s", inputs.billet_shape, warning)
        return Weights(inputs.raw_material_weight_kg, finished, SOURCE_INPUT), (warning,)

    return Weights(inputs.raw_material_weight_kg, finished, SOURCE_INPUT), ()


__all__ = [
    "SOURCE_GEOMETRY",
    "SOURCE_INPUT",
    "VOLUME_MM3",
    "billet_volume_mm3",
    "compute_raw_weight",
    "resolve_weights",
]
