"""Safe arithmetic formula language used by process time formulas."""
from __future__ import annotations

from .evaluator import CompiledFormula, compile_formula, evaluate
from .parser import FUNCTION_ARITY, parse, referenced_names

__all__ = [
    "CompiledFormula",
    "FUNCTION_ARITY",
    "compile_formula",
    "evaluate",
    "parse",
    "referenced_names",
]
