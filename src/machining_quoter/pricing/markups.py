"""Sequential, compounding markup cascade.

Each markup is a percentage of the running total after the previous one has
been added, in :data:`MARKUP_ORDER`. Surface treatment cost is bought in
finished and joins the running total only after the overhead markups
(general, admin, sales, miscellaneous), so it carries packing, transport,
profit and duty but no overhead. That join point is what makes the final
price depend on the order of the steps.
"""
from __future__ import annotations

import logging

from machining_quoter.domain import MARKUP_ORDER, MarkupCosts, Markups

logger = logging.getLogger(__name__)

OVERHEAD_STEPS = 4


def apply_markup_cascade(
    base_cost: float,
    markups: Markups,
    *,
    surface_treatment_cost: float = 0.0,
) -> tuple[MarkupCosts, float]:
    """Return the amount added by each markup and the final total."""

    running = base_cost
    amounts: dict[str, float] = {}
    for step, name in enumerate(MARKUP_ORDER):
        if step == OVERHEAD_STEPS:
            running += surface_treatment_cost
        amount = running * (getattr(markups, name) or 0.0) / 100.0
        amounts[name] = amount
        running += amount

    logger.debug("Markup cascade %.4f -> %.4f", base_cost + surface_treatment_cost, running)
    return MarkupCosts(**amounts), running


__all__ = ["OVERHEAD_STEPS", "apply_markup_cascade"]
