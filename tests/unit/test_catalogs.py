from __future__ import annotations

import json
from pathlib import Path

import pytest

from machining_quoter.catalogs import ReferenceCatalog, default_catalog, load_catalog_dir, load_region_costs
from machining_quoter.config import ConfigError
from machining_quoter.domain import ITEM_MACHINE, Material
from machining_quoter.formula import compile_formula


def test_bundled_catalog_contents() -> None:
    catalog = default_catalog()

    assert catalog.material("mat_011").density_g_cm3 == pytest.approx(2.7)
    assert catalog.material("Aluminum 6061-T6").id == "mat_011"
    assert catalog.machines["mach_001"].machine_type == "CNC Mill"
    assert catalog.tools["tool_004"].diameter == 50.0
    assert catalog.processes["Turning (OD/ID)"].group == "Turning"
    assert catalog.processes["Band Saw Cut-Off"].group == "Sawing"


@pytest.mark.parametrize("name", sorted(default_catalog().processes))
def test_every_bundled_formula_compiles(name: str) -> None:
    process = default_catalog().processes[name]

    compiled = compile_formula(process.formula, process_id=process.id)

    assert compiled.names


def test_catalog_tables_are_read_only() -> None:
    catalog = ReferenceCatalog.from_records(materials=[Material(id="m")])

    with pytest.raises(TypeError):
        catalog.materials["x"] = Material(id="x")  # type: ignore[index]


def test_unknown_material_lookup_returns_none() -> None:
    assert default_catalog().material("unobtainium") is None
    assert default_catalog().material(None) is None


def test_catalog_dir_overrides_bundled_tables(tmp_path: Path) -> None:
    (tmp_path / "machines.json").write_text(
        json.dumps([{"id": "mach_001", "name": "Old VF-2", "machineType": "CNC Mill", "hourlyRate": 55}]),
        encoding="utf-8",
    )
    (tmp_path / "tools.csv").write_text(
        "id,name,diameter,numberOfTeeth,cuttingSpeedVc,feedPerTooth,price,estimatedLife\n"
        "tool_900,6mm drill,6,2,80,0.1,25,\n",
        encoding="utf-8",
    )

    catalog = load_catalog_dir(tmp_path)

    assert catalog.machines["mach_001"].hourly_rate == 55.0
    assert "mach_002" in catalog.machines
    tool = catalog.tools["tool_900"]
    assert tool.number_of_teeth == 2
    assert tool.estimated_life_hours is None
    assert "tool_001" in catalog.tools
    assert catalog.processes == default_catalog().processes


def test_processes_must_be_json(tmp_path: Path) -> None:
    (tmp_path / "processes.csv").write_text("id,name,formula\np,Slot,1\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_catalog_dir(tmp_path)


def test_missing_catalog_dir_is_a_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_catalog_dir(tmp_path / "nope")


def test_invalid_catalog_entry_names_the_file(tmp_path: Path) -> None:
    (tmp_path / "machines.json").write_text(json.dumps([{"name": "no id"}]), encoding="utf-8")

    with pytest.raises(ConfigError, match="machines.json"):
        load_catalog_dir(tmp_path)


def test_region_costs_from_csv(tmp_path: Path) -> None:
    path = tmp_path / "region_costs.csv"
    path.write_text(
        "item_id,item_type,region,price,currency,valid_from\n"
        "mach_001,machine,EU,70,EUR,2024-01-01\n"
        "mach_001,machine,EU,72,EUR,2025-01-01T00:00:00Z\n",
        encoding="utf-8",
    )

    costs = load_region_costs(path)

    assert [cost.price for cost in costs] == [70.0, 72.0]
    assert all(cost.item_type == ITEM_MACHINE for cost in costs)
    assert costs[0].valid_from < costs[1].valid_from


def test_region_costs_from_json(tmp_path: Path) -> None:
    path = tmp_path / "region_costs.json"
    path.write_text(
        json.dumps([{"itemId": "tool_001", "itemType": "tool", "region": "UK", "price": 80, "currency": "GBP"}]),
        encoding="utf-8",
    )

    [cost] = load_region_costs(path)

    assert cost.currency == "GBP"
    assert cost.region == "UK"
