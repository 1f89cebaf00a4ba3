"""Stored calculation: an input snapshot plus its most recent outcome."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from machining_quoter.domain.inputs import MachiningInput
from machining_quoter.domain.results import CalculationOutcome, MachiningResult
from machining_quoter.errors import CalculationError

STATUS_DRAFT = "draft"
STATUS_FINAL = "final"


@dataclass
class Calculation:
    """A calculation owns exactly one input and at most one result.

    Any edit to the input discards the result. Once final, the calculation
    can no longer be edited or recomputed.
    """

    id: str
    inputs: MachiningInput
    user_id: str = ""
    status: str = STATUS_DRAFT
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    outcome: CalculationOutcome | None = None

    @property
    def result(self) -> MachiningResult | None:
        return None if self.outcome is None else self.outcome.result

    @property
    def is_final(self) -> bool:
        return self.status == STATUS_FINAL

    def _require_draft(self, action: str) -> None:
        if self.is_final:
            raise CalculationError(f"Cannot {action} a finalized calculation", entity_id=self.id)

    def edit(self, inputs: MachiningInput) -> None:
        self._require_draft("edit")
        self.inputs = inputs
        self.outcome = None

    def record(self, outcome: CalculationOutcome) -> None:
        self._require_draft("recompute")
        self.outcome = outcome

    def finalize(self) -> None:
        self._require_draft("finalize")
        if self.outcome is None or not self.outcome.ok:
            raise CalculationError("Cannot finalize a calculation without a result", entity_id=self.id)
        self.status = STATUS_FINAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "inputs": self.inputs.to_dict(),
            "results": None if self.result is None else self.result.to_dict(),
            "error": None if self.outcome is None else self.outcome.reason,
        }


__all__ = ["Calculation", "STATUS_DRAFT", "STATUS_FINAL"]
