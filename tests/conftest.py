from __future__ import annotations

from typing import Any, Callable

import pytest

from machining_quoter import config
from machining_quoter.catalogs import ReferenceCatalog, default_catalog
from machining_quoter.config import EngineSettings
from machining_quoter.domain import (
    Machine,
    MachiningInput,
    Material,
    Operation,
    Process,
    ProcessParameter,
    Setup,
    Tool,
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's settings override out of the test run."""

    monkeypatch.delenv(config.APP_SETTINGS_ENV_VAR, raising=False)
    monkeypatch.setattr(config, "_APP_SETTINGS_CACHE", None)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(currency_rates_to_usd={"USD": 1.0, "EUR": 1.07, "GBP": 1.27})


@pytest.fixture
def end_mill() -> Tool:
    return Tool(
        id="T-EM10",
        name="10mm end mill",
        diameter=10.0,
        number_of_teeth=4,
        cutting_speed_vc=100.0,
        feed_per_tooth=0.1,
        price=100.0,
        estimated_life_hours=10.0,
    )


@pytest.fixture
def fixed_time_process() -> Process:
    """A process whose formula is simply its ``minutes`` parameter."""

    return Process(
        id="proc_fixed",
        name="Fixed Cycle",
        group="Milling",
        formula="minutes",
        parameters=(ProcessParameter("minutes", "min"),),
        compatible_machine_types=("CNC Mill",),
    )


@pytest.fixture
def slot_process() -> Process:
    return Process(
        id="proc_slot",
        name="Slot",
        group="Milling",
        formula="(machiningLength + toolDiameter) / feedRate",
        parameters=(ProcessParameter("machiningLength", "mm"),),
    )


@pytest.fixture
def mill() -> Machine:
    return Machine(id="M-1", name="Test Mill", machine_type="CNC Mill", hourly_rate=60.0)


@pytest.fixture
def small_catalog(
    end_mill: Tool, fixed_time_process: Process, slot_process: Process, mill: Machine
) -> ReferenceCatalog:
    return ReferenceCatalog.from_records(
        materials=[Material(id="mat_al", name="Aluminium", density_g_cm3=2.7, cost_per_kg=4.0)],
        machines=[mill],
        tools=[end_mill],
        processes=[fixed_time_process, slot_process],
    )


@pytest.fixture
def bundled_catalog() -> ReferenceCatalog:
    return default_catalog()


@pytest.fixture
def make_input() -> Callable[..., MachiningInput]:
    """Build the reference job: 10 parts, 6 min cutting, 30 min setup, 60 s tool change.

    With the small catalog this prices at 120 material, 10 heat treatment,
    100 machining and 10 tooling: a subtotal of 240.
    """

    def factory(**overrides: Any) -> MachiningInput:
        setup_overrides = overrides.pop("setup", {})
        operation_overrides = overrides.pop("operation", {})
        operation_fields: dict[str, Any] = {
            "id": "op-1",
            "process_name": "Fixed Cycle",
            "tool_id": "T-EM10",
            "parameters": {"minutes": 6.0},
        }
        operation_fields.update(operation_overrides)
        setup_fields: dict[str, Any] = {
            "id": "setup-1",
            "name": "OP10",
            "operations": (Operation(**operation_fields),),
            "time_per_setup_min": 30.0,
            "tool_change_time_sec": 60.0,
            "efficiency": 1.0,
            "machine_id": "M-1",
        }
        setup_fields.update(setup_overrides)
        fields: dict[str, Any] = {
            "id": "calc-1",
            "batch_volume": 10.0,
            "raw_material_process": "Other",
            "raw_material_weight_kg": 2.0,
            "finished_part_weight_kg": 1.5,
            "material_cost_per_kg": 5.0,
            "transport_cost_per_kg": 1.0,
            "heat_treatment_cost_per_kg": 0.5,
            "setups": (Setup(**setup_fields),),
        }
        fields.update(overrides)
        return MachiningInput(**fields)

    return factory
