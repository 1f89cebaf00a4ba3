"""Region and currency resolution of catalog prices into :class:`UnitCosts`.

Catalog prices are USD. A dated :class:`RegionCost` overrides the catalog
price for a region from its ``valid_from`` onward; the most recent entry
that is already valid wins, and a region without entries falls back to the
default region before falling back to the catalog. Conversion goes through
USD using the configured rates.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Mapping

from machining_quoter.config import EngineSettings, load_engine_settings
from machining_quoter.domain import ITEM_MACHINE, ITEM_MATERIAL, ITEM_TOOL, MachiningInput, RegionCost, UnitCosts

if TYPE_CHECKING:  # pragma: no cover - import cycle guard for type checkers
    from machining_quoter.catalogs import ReferenceCatalog

logger = logging.getLogger(__name__)

CATALOG_CURRENCY = "USD"


def latest_region_cost(
    item_id: str,
    item_type: str,
    region: str,
    region_costs: Iterable[RegionCost],
    as_of: datetime,
) -> RegionCost | None:
    """Return the newest entry for ``region`` that is valid at ``as_of``."""

    best: RegionCost | None = None
    for entry in region_costs:
        if entry.item_id != item_id or entry.item_type != item_type or entry.region != region:
            continue
        if entry.valid_from > as_of:
            continue
        if best is None or entry.valid_from > best.valid_from:
            best = entry
    return best


def convert_currency(
    amount: float,
    from_currency: str,
    to_currency: str,
    rates_to_usd: Mapping[str, float],
) -> float:
    """Convert ``amount`` via USD. Unknown currencies are treated as USD."""

    source = from_currency.upper()
    target = to_currency.upper()
    if source == target:
        return amount
    for code in (source, target):
        if code not in rates_to_usd:
            logger.warning("No conversion rate for %s; treating it as USD", code)
    from_rate = rates_to_usd.get(source, 1.0)
    to_rate = rates_to_usd.get(target, 1.0)
    return amount * from_rate / to_rate


def get_converted_price(
    item_id: str,
    item_type: str,
    region: str,
    region_costs: Iterable[RegionCost],
    fallback_price: float | None,
    target_currency: str,
    *,
    as_of: datetime | None = None,
    settings: EngineSettings | None = None,
) -> float | None:
    """Return the price of one item in ``target_currency``.

    ``fallback_price`` is the catalog price in USD; ``None`` is returned when
    there is neither a regional entry nor a catalog price.
    """

    settings = settings or load_engine_settings()
    moment = as_of or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    costs = tuple(region_costs)

    entry = latest_region_cost(item_id, item_type, region, costs, moment)
    if entry is None and region != settings.default_region:
        entry = latest_region_cost(item_id, item_type, settings.default_region, costs, moment)

    if entry is not None:
        price, currency = entry.price, entry.currency
    elif fallback_price is not None:
        price, currency = fallback_price, CATALOG_CURRENCY
    else:
        return None

    return convert_currency(price, currency, target_currency, settings.currency_rates_to_usd)


def resolve_unit_costs(
    inputs: MachiningInput,
    catalog: "ReferenceCatalog",
    region_costs: Iterable[RegionCost] = (),
    *,
    as_of: datetime | None = None,
    settings: EngineSettings | None = None,
) -> UnitCosts:
    """Resolve every price the quote needs into the input's currency.

    A material price typed on the input is taken as already being in the
    input currency; a regional entry still overrides it.
    """

    settings = settings or load_engine_settings()
    moment = as_of or datetime.now(timezone.utc)
    costs = tuple(region_costs)
    currency = inputs.currency or settings.default_currency
    region = inputs.region or settings.default_region

    def price(item_id: str, item_type: str, fallback: float | None) -> float | None:
        return get_converted_price(
            item_id, item_type, region, costs, fallback, currency, as_of=moment, settings=settings
        )

    material = catalog.material(inputs.material_type)
    material_id = material.id if material else inputs.material_type
    if inputs.material_cost_per_kg is not None:
        material_cost = price(material_id, ITEM_MATERIAL, None)
        if material_cost is None:
            material_cost = inputs.material_cost_per_kg
    else:
        material_cost = price(material_id, ITEM_MATERIAL, material.cost_per_kg if material else None)

    machine_rates: dict[str, float] = {}
    tool_prices: dict[str, float] = {}
    for setup in inputs.setups:
        machine = catalog.machines.get(setup.machine_id) if setup.machine_id else None
        if machine is not None and machine.id not in machine_rates:
            rate = price(machine.id, ITEM_MACHINE, machine.hourly_rate)
            if rate is not None:
                machine_rates[machine.id] = rate
        for operation in setup.operations:
            tool = catalog.tools.get(operation.tool_id) if operation.tool_id else None
            if tool is not None and tool.id not in tool_prices:
                tool_price = price(tool.id, ITEM_TOOL, tool.price)
                if tool_price is not None:
                    tool_prices[tool.id] = tool_price

    return UnitCosts(
        currency=currency,
        material_cost_per_kg=material_cost,
        machine_hourly_rates=machine_rates,
        tool_prices=tool_prices,
    )


__all__ = [
    "CATALOG_CURRENCY",
    "convert_currency",
    "get_converted_price",
    "latest_region_cost",
    "resolve_unit_costs",
]
