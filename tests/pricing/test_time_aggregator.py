from __future__ import annotations

from typing import Callable

import pytest

from machining_quoter.catalogs import ReferenceCatalog
from machining_quoter.domain import MachiningInput, Operation, Process, ProcessParameter, Setup
from machining_quoter.errors import MissingDataWarning, ValidationError
from machining_quoter.pricing.time_aggregator import aggregate


def _aggregate(inputs: MachiningInput, catalog: ReferenceCatalog, **kwargs):
    return aggregate(
        inputs.setups,
        catalog.processes,
        catalog.tools,
        inputs.batch_volume,
        machines_by_id=catalog.machines,
        **kwargs,
    )


def test_per_part_times_amortize_setup_only(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    breakdown = _aggregate(make_input(), small_catalog)

    [row] = breakdown.operations
    assert row.time_min == pytest.approx(6.0)
    assert row.tool_change_time_min == pytest.approx(1.0)
    assert row.machine_name == "Test Mill"
    assert row.process_id == "proc_fixed"

    [setup] = breakdown.setups
    assert setup.setup_time_min == pytest.approx(3.0)
    assert setup.batch_setup_time_min == pytest.approx(30.0)
    assert setup.total_time_min == pytest.approx(10.0)

    totals = breakdown.totals
    assert totals.cycle_time_per_part_min == pytest.approx(10.0)
    assert totals.total_machine_time_hours == pytest.approx(10.0 * 10 / 60)


def test_efficiency_stretches_every_duration(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    breakdown = _aggregate(make_input(setup={"efficiency": 0.5}), small_catalog)

    assert breakdown.totals.cutting_time_min == pytest.approx(12.0)
    assert breakdown.totals.tool_change_time_min == pytest.approx(2.0)
    assert breakdown.totals.setup_time_min == pytest.approx(6.0)


def test_larger_batch_lowers_only_setup_share(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    small = _aggregate(make_input(batch_volume=10.0), small_catalog).totals
    large = _aggregate(make_input(batch_volume=100.0), small_catalog).totals

    assert large.cutting_time_min == small.cutting_time_min
    assert large.tool_change_time_min == small.tool_change_time_min
    assert large.setup_time_min == pytest.approx(small.setup_time_min / 10)


def test_shared_tool_change_is_spread_over_batch(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    breakdown = _aggregate(make_input(operation={"shared_tool_change": True}), small_catalog)

    assert breakdown.operations[0].tool_change_time_min == pytest.approx(0.1)


def test_zero_feed_rate_contributes_zero_minutes(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    inputs = make_input(
        operation={"process_name": "Slot", "tool_id": None, "parameters": {"machiningLength": 100.0}}
    )

    breakdown = _aggregate(inputs, small_catalog)

    assert breakdown.operations[0].time_min == 0.0
    assert breakdown.operations[0].formula_failed is False
    assert breakdown.formula_errors == ()


def test_broken_formula_is_absorbed_and_logged(
    make_input: Callable[..., MachiningInput],
    small_catalog: ReferenceCatalog,
    caplog: pytest.LogCaptureFixture,
) -> None:
    broken = Process(id="proc_broken", name="Broken", formula="Math.random() * 5")
    catalog = small_catalog.merged(ReferenceCatalog.from_records(processes=[broken]))
    good = Operation(id="op-1", process_name="Fixed Cycle", tool_id="T-EM10", parameters={"minutes": 6.0})
    bad = Operation(id="op-2", process_name="Broken", tool_id="T-EM10")
    inputs = make_input(setup={"operations": (good, bad)})

    with caplog.at_level("WARNING"):
        breakdown = _aggregate(inputs, catalog)

    assert [row.formula_failed for row in breakdown.operations] == [False, True]
    assert breakdown.operations[1].time_min == 0.0
    assert breakdown.totals.cutting_time_min == pytest.approx(6.0)
    [error] = breakdown.formula_errors
    assert error.process_id == "proc_broken"
    assert "proc_broken" in caplog.text


def test_long_formula_is_costed_not_zeroed(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    summed = Process(
        id="proc_summed",
        name="Summed",
        formula=" + ".join(["minutes / 220"] * 220),
        parameters=(ProcessParameter("minutes", "min"),),
    )
    catalog = small_catalog.merged(ReferenceCatalog.from_records(processes=[summed]))
    inputs = make_input(operation={"process_name": "Summed"})

    breakdown = _aggregate(inputs, catalog)

    assert breakdown.formula_errors == ()
    assert breakdown.operations[0].time_min == pytest.approx(6.0)


def test_operation_rows_keep_declaration_order(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    first = Setup(
        id="setup-1",
        operations=(
            Operation(id="a", process_name="Fixed Cycle", parameters={"minutes": 1.0}),
            Operation(id="b", process_name="Fixed Cycle", parameters={"minutes": 2.0}),
        ),
    )
    second = Setup(
        id="setup-2",
        operations=(Operation(id="c", process_name="Fixed Cycle", parameters={"minutes": 3.0}),),
    )

    breakdown = _aggregate(make_input(setups=(first, second)), small_catalog)

    assert [(row.setup_id, row.operation_id) for row in breakdown.operations] == [
        ("setup-1", "a"),
        ("setup-1", "b"),
        ("setup-2", "c"),
    ]


def test_missing_optional_times_are_reported(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    inputs = make_input(setup={"time_per_setup_min": None, "tool_change_time_sec": None, "efficiency": None})

    breakdown = _aggregate(inputs, small_catalog)

    assert breakdown.totals.cycle_time_per_part_min == pytest.approx(6.0)
    assert set(breakdown.missing_data) == {
        MissingDataWarning("efficiency", entity_id="setup-1", default=1.0),
        MissingDataWarning("time_per_setup_min", entity_id="setup-1"),
        MissingDataWarning("tool_change_time_sec", entity_id="setup-1"),
    }


@pytest.mark.parametrize("batch_volume", [0.0, -5.0, float("nan")])
def test_non_positive_batch_is_rejected(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog, batch_volume: float
) -> None:
    with pytest.raises(ValidationError):
        _aggregate(make_input(batch_volume=batch_volume), small_catalog)


@pytest.mark.parametrize(
    "operation, entity_id",
    [
        ({"process_name": "Teleport"}, "Teleport"),
        ({"tool_id": "T-MISSING"}, "T-MISSING"),
    ],
)
def test_unknown_references_name_the_entity(
    make_input: Callable[..., MachiningInput],
    small_catalog: ReferenceCatalog,
    operation: dict,
    entity_id: str,
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        _aggregate(make_input(operation=operation), small_catalog)

    assert excinfo.value.entity_id == entity_id


def test_unknown_machine_is_rejected(
    make_input: Callable[..., MachiningInput], small_catalog: ReferenceCatalog
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        _aggregate(make_input(setup={"machine_id": "M-404"}), small_catalog)

    assert excinfo.value.entity_id == "M-404"
