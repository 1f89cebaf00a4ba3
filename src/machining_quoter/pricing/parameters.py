"""Variable environment builder for a single operation.

The environment is assembled in a fixed order: the process's declared
parameters (values from the operation, ``0`` when absent), then the
tool-derived implicit values ``toolDiameter``, ``spindleSpeed`` and
``feedRate`` plus the group-specific helpers. A declared parameter that the
operation supplies always wins over an implicit value of the same name.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping

from machining_quoter.domain import Operation, Process, Tool
from machining_quoter.errors import MissingDataWarning

logger = logging.getLogger(__name__)

TOOL_DIAMETER = "toolDiameter"
SPINDLE_SPEED = "spindleSpeed"
FEED_RATE = "feedRate"
IMPLICIT_NAMES = (TOOL_DIAMETER, SPINDLE_SPEED, FEED_RATE)

GROUP_TURNING = "Turning"
GROUP_SAWING = "Sawing"

LATHE_DRILLING = "Drilling (on Lathe)"
BAND_SAW = "Band Saw Cut-Off"
ABRASIVE_CUT_OFF = "Abrasive Cut-Off"

# Turning speeds are driven by the workpiece, first match wins.
WORKPIECE_DIAMETER_KEYS = ("diameterStart", "facingDiameter", "partingDiameter")

MM_PER_INCH = 25.4


@dataclass(frozen=True)
class ResolvedParameters:
    values: dict[str, float]
    missing: tuple[MissingDataWarning, ...] = ()


def _positive(value: float | None) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        return 0.0
    return float(value)


def spindle_speed_rpm(cutting_speed_m_min: float, diameter_mm: float) -> float:
    """Return ``1000·Vc / (π·D)``, or ``0`` when either input is not positive."""

    if cutting_speed_m_min <= 0 or diameter_mm <= 0:
        return 0.0
    return cutting_speed_m_min * 1000.0 / (math.pi * diameter_mm)


def milling_feed_rate(spindle_speed: float, feed_per_tooth: float, teeth: float) -> float:
    """Return the table feed in mm/min for a multi-tooth cutter."""

    if spindle_speed <= 0 or feed_per_tooth <= 0 or teeth <= 0:
        return 0.0
    return spindle_speed * feed_per_tooth * teeth


def _first(supplied: Mapping[str, float], *keys: str) -> float | None:
    for key in keys:
        if key in supplied:
            return supplied[key]
    return None


def _milling(supplied: Mapping[str, float], tool: Tool | None, cutting_speed: float) -> dict[str, float]:
    tool_diameter = _positive(tool.diameter) if tool else 0.0
    feed_per_tooth = _first(supplied, "feedPerTooth")
    if feed_per_tooth is None:
        feed_per_tooth = (tool.feed_per_tooth if tool else None) or 0.0
    teeth = _first(supplied, "numberOfTeeth")
    if teeth is None:
        teeth = float(tool.number_of_teeth) if tool and tool.number_of_teeth is not None else 1.0

    spindle = spindle_speed_rpm(cutting_speed, tool_diameter)
    return {
        SPINDLE_SPEED: spindle,
        FEED_RATE: milling_feed_rate(spindle, feed_per_tooth, teeth),
        "feedPerTooth": feed_per_tooth,
        "numberOfTeeth": teeth,
    }


def _turning(
    process: Process, supplied: Mapping[str, float], tool: Tool | None, cutting_speed: float
) -> dict[str, float]:
    tool_diameter = _positive(tool.diameter) if tool else 0.0
    feed_per_rev = _first(supplied, "feedPerRev")
    if feed_per_rev is None:
        feed_per_rev = (tool.feed_per_tooth if tool else None) or 0.0

    if process.name == LATHE_DRILLING:
        workpiece = tool_diameter
    else:
        found = _first(supplied, *WORKPIECE_DIAMETER_KEYS)
        workpiece = tool_diameter if found is None else found

    spindle = spindle_speed_rpm(cutting_speed, workpiece)
    feed_rate = spindle * feed_per_rev if spindle > 0 and feed_per_rev > 0 else 0.0
    return {SPINDLE_SPEED: spindle, FEED_RATE: feed_rate, "feedPerRev": feed_per_rev}


def _sawing(
    process: Process, supplied: Mapping[str, float], tool: Tool | None, cutting_speed: float
) -> dict[str, float]:
    if process.name == BAND_SAW:
        feed_per_tooth = _first(supplied, "feedPerTooth")
        if feed_per_tooth is None:
            feed_per_tooth = (tool.feed_per_tooth if tool else None) or 0.0
        tpi = _first(supplied, "bladeTPI") or 0.0
        feed_rate = 0.0
        if feed_per_tooth > 0 and tpi > 0 and cutting_speed > 0:
            feed_rate = feed_per_tooth * tpi * MM_PER_INCH * cutting_speed
        return {SPINDLE_SPEED: 0.0, FEED_RATE: feed_rate}
    if process.name == ABRASIVE_CUT_OFF:
        return {SPINDLE_SPEED: 0.0, FEED_RATE: _first(supplied, FEED_RATE) or 0.0}
    return _milling(supplied, tool, cutting_speed)


def resolve_environment(operation: Operation, process: Process, tool: Tool | None) -> ResolvedParameters:
    """Build the variable map for ``operation`` and report defaulted values."""

    declared = process.parameter_names
    supplied = {name: operation.parameters[name] for name in declared if name in operation.parameters}

    ignored = sorted(set(operation.parameters) - set(declared))
    if ignored:
        logger.debug("Operation %s: ignoring undeclared parameters %s", operation.id, ", ".join(ignored))

    cutting_speed = _first(supplied, "cuttingSpeed")
    if cutting_speed is None:
        cutting_speed = (tool.cutting_speed_vc if tool else None) or 0.0

    if process.group == GROUP_TURNING:
        implicit = _turning(process, supplied, tool, cutting_speed)
    elif process.group == GROUP_SAWING:
        implicit = _sawing(process, supplied, tool, cutting_speed)
    else:
        implicit = _milling(supplied, tool, cutting_speed)
    implicit[TOOL_DIAMETER] = _positive(tool.diameter) if tool else 0.0

    values: dict[str, float] = {}
    missing: list[MissingDataWarning] = []
    for name in declared:
        if name in supplied:
            values[name] = supplied[name]
        elif name not in implicit:
            values[name] = 0.0
            missing.append(MissingDataWarning(name, entity_id=operation.id))
            logger.debug("%s", missing[-1])

    for name, value in implicit.items():
        if name not in supplied:
            values[name] = value if math.isfinite(value) else 0.0

    return ResolvedParameters(values=values, missing=tuple(missing))


def resolve(operation: Operation, process: Process, tool: Tool | None) -> dict[str, float]:
    """Return the variable environment used to evaluate ``process.formula``."""

    return resolve_environment(operation, process, tool).values


__all__ = [
    "FEED_RATE",
    "IMPLICIT_NAMES",
    "ResolvedParameters",
    "SPINDLE_SPEED",
    "TOOL_DIAMETER",
    "milling_feed_rate",
    "resolve",
    "resolve_environment",
    "spindle_speed_rpm",
]
