"""Exception and warning types raised by the calculation engine."""
from __future__ import annotations


class MachiningQuoterError(Exception):
    """Base class for every error raised by :mod:`machining_quoter`."""


class FormulaError(MachiningQuoterError):
    """A process formula could not be compiled.

    Formula errors are local: the time aggregator records them, substitutes
    zero minutes for the operation and keeps going.
    """

    def __init__(
        self,
        reason: str,
        *,
        formula: str = "",
        process_id: str | None = None,
        position: int | None = None,
    ) -> None:
        self.reason = reason
        self.formula = formula
        self.process_id = process_id
        self.position = position
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = f" at position {self.position}" if self.position is not None else ""
        owner = f"process {self.process_id!r}: " if self.process_id else ""
        return f"{owner}{self.reason}{where}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormulaError):
            return NotImplemented
        return (self.reason, self.formula, self.process_id, self.position) == (
            other.reason,
            other.formula,
            other.process_id,
            other.position,
        )

    def __hash__(self) -> int:
        return hash((self.reason, self.formula, self.process_id, self.position))

    def for_process(self, process_id: str | None) -> "FormulaError":
        """Return a copy of this error attributed to ``process_id``."""

        return FormulaError(
            self.reason,
            formula=self.formula,
            process_id=process_id,
            position=self.position,
        )


class CalculationError(MachiningQuoterError):
    """A calculation could not be completed; no partial result is produced."""

    def __init__(self, reason: str, *, entity_id: str | None = None) -> None:
        self.reason = reason
        self.entity_id = entity_id
        suffix = f" ({entity_id})" if entity_id else ""
        super().__init__(f"{reason}{suffix}")


class ValidationError(CalculationError):
    """Structural invariant violation in the input or its references."""


class MissingDataWarning(UserWarning):
    """An optional numeric field was absent and has been treated as zero.

    These are collected on the result rather than raised.
    """

    def __init__(self, field_name: str, *, entity_id: str | None = None, default: float = 0.0) -> None:
        self.field_name = field_name
        self.entity_id = entity_id
        self.default = default
        owner = f"{entity_id}." if entity_id else ""
        super().__init__(f"{owner}{field_name} missing; using {default:g}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MissingDataWarning):
            return NotImplemented
        return (self.field_name, self.entity_id, self.default) == (
            other.field_name,
            other.entity_id,
            other.default,
        )

    def __hash__(self) -> int:
        return hash((self.field_name, self.entity_id, self.default))


__all__ = [
    "CalculationError",
    "FormulaError",
    "MachiningQuoterError",
    "MissingDataWarning",
    "ValidationError",
]
