"""Tree-walking interpreter for parsed process formulas.

Arithmetic follows IEEE-754 doubles the way the formula libraries were
originally authored: ``x / 0`` is infinite, ``0 / 0`` is NaN, ``||`` and
``&&`` return operand values, and comparisons yield ``1`` or ``0``.
Whatever happens inside the tree, :meth:`CompiledFormula.evaluate` only ever
returns a finite float; non-finite results collapse to ``0``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping

from machining_quoter.coerce import finite_or_zero
from machining_quoter.config import EngineSettings
from machining_quoter.errors import FormulaError

from .parser import (
    Call,
    Chain,
    Conditional,
    Constant,
    Logical,
    Name,
    Node,
    Number,
    Unary,
    parse,
    referenced_names,
)

_DEFAULT_SETTINGS = EngineSettings()


def _truthy(value: float) -> bool:
    return not (value == 0.0 or math.isnan(value))


def _divide(left: float, right: float) -> float:
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _modulo(left: float, right: float) -> float:
    if right == 0.0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    return math.fmod(left, right)


def _integral(fn: Callable[[float], int]) -> Callable[[float], float]:
    def apply(value: float) -> float:
        if not math.isfinite(value):
            return value
        return float(fn(value))

    return apply


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _sqrt(value: float) -> float:
    if math.isnan(value) or value < 0:
        return math.nan
    return math.sqrt(value)


def _pow(base: float, exponent: float) -> float:
    if base == 0.0 and exponent < 0:
        return math.inf
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


def _extreme(pick: Callable[..., float]) -> Callable[..., float]:
    def apply(*values: float) -> float:
        if any(math.isnan(value) for value in values):
            return math.nan
        return pick(values)

    return apply


FUNCTIONS: dict[str, Callable[..., float]] = {
    "ceil": _integral(math.ceil),
    "floor": _integral(math.floor),
    "round": _integral(_round_half_up),
    "sqrt": _sqrt,
    "abs": abs,
    "pow": _pow,
    "max": _extreme(max),
    "min": _extreme(min),
}

CONSTANTS = {"pi": math.pi}

_ARITHMETIC: dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _divide,
    "%": _modulo,
}

_RELATIONAL: dict[str, Callable[[float, float], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
}


def _evaluate(node: Node, variables: Mapping[str, float]) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Name):
        value = variables.get(node.name)
        return 0.0 if value is None else float(value)
    if isinstance(node, Constant):
        return CONSTANTS[node.name]
    if isinstance(node, Unary):
        value = _evaluate(node.operand, variables)
        for op in reversed(node.ops):
            if op == "-":
                value = -value
            elif op == "!":
                value = 0.0 if _truthy(value) else 1.0
        return value
    if isinstance(node, Chain):
        value = _evaluate(node.first, variables)
        for op, operand in node.rest:
            right = _evaluate(operand, variables)
            if op in _ARITHMETIC:
                value = _ARITHMETIC[op](value, right)
            else:
                value = 1.0 if _RELATIONAL[op](value, right) else 0.0
        return value
    if isinstance(node, Logical):
        value = _evaluate(node.operands[0], variables)
        for operand in node.operands[1:]:
            # short-circuit: || stops on a truthy value, && on a falsy one
            if _truthy(value) == (node.op == "||"):
                return value
            value = _evaluate(operand, variables)
        return value
    if isinstance(node, Conditional):
        if _truthy(_evaluate(node.test, variables)):
            return _evaluate(node.then, variables)
        return _evaluate(node.otherwise, variables)
    if isinstance(node, Call):
        args = [_evaluate(arg, variables) for arg in node.args]
        return float(FUNCTIONS[node.function](*args))
    raise TypeError(f"Unsupported formula node: {type(node).__name__}")


@dataclass(frozen=True)
class CompiledFormula:
    """A parsed formula ready to be evaluated against many variable maps."""

    source: str
    tree: Node
    names: frozenset[str]

    def evaluate(self, variables: Mapping[str, float]) -> float:
        return finite_or_zero(_evaluate(self.tree, variables))


@lru_cache(maxsize=512)
def _compile(formula: str, max_depth: int, max_length: int) -> CompiledFormula:
    if len(formula) > max_length:
        raise FormulaError(f"Formula is longer than {max_length} characters", formula=formula)
    tree = parse(formula, max_depth=max_depth)
    return CompiledFormula(source=formula, tree=tree, names=referenced_names(tree))


def compile_formula(
    formula: str,
    *,
    process_id: str | None = None,
    settings: EngineSettings | None = None,
) -> CompiledFormula:
    """Parse ``formula`` once, raising :class:`FormulaError` when it is invalid.

    Compiled formulas are cached per source text and limits, so recomputing a
    quote does not re-parse every process.
    """

    settings = settings or _DEFAULT_SETTINGS
    try:
        return _compile(formula, settings.max_formula_depth, settings.max_formula_length)
    except FormulaError as exc:
        if process_id is None:
            raise
        raise exc.for_process(process_id) from exc


def evaluate(
    formula: str,
    variables: Mapping[str, float],
    *,
    process_id: str | None = None,
    settings: EngineSettings | None = None,
) -> float:
    """Evaluate ``formula`` against ``variables`` and return a finite float.

    Unknown identifiers read as ``0``. Syntax errors raise
    :class:`FormulaError`; numeric trouble never does.
    """

    compiled = compile_formula(formula, process_id=process_id, settings=settings)
    return compiled.evaluate(variables)


__all__ = ["CONSTANTS", "FUNCTIONS", "CompiledFormula", "compile_formula", "evaluate"]
