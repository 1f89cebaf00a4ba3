from __future__ import annotations

import math
import random

import pytest

from machining_quoter.formula import compile_formula, evaluate


@pytest.mark.parametrize(
    "formula, expected",
    [
        ("2 + 3 * 4", 14.0),
        ("(2 + 3) * 4", 20.0),
        ("10 - 4 - 3", 3.0),
        ("64 / 4 / 2", 8.0),
        ("10 % 4", 2.0),
        ("-3 + +5", 2.0),
        ("Math.ceil(7 / 2)", 4.0),
        ("floor(7.9)", 7.0),
        ("Math.round(2.5)", 3.0),
        ("round(-2.5)", -2.0),
        ("Math.sqrt(16)", 4.0),
        ("Math.pow(2, 10)", 1024.0),
        ("Math.abs(-4)", 4.0),
        ("abs(-4)", 4.0),
        ("max(1, 5, 3)", 5.0),
        ("Math.min(4, 2)", 2.0),
        ("3 > 2", 1.0),
        ("3 <= 2", 0.0),
        ("5 === 5", 1.0),
        ("5 !== 5", 0.0),
        ("2 == 2 && 3 != 4", 1.0),
        ("!0", 1.0),
        ("!7", 0.0),
        ("1 ? 10 : 20", 10.0),
        ("0 ? 10 : 1 ? 30 : 40", 30.0),
        ("1.5e2", 150.0),
        (".5 + .25", 0.75),
        ("3 > 2 > 0", 1.0),
        ("2 * 3 % 4", 2.0),
        ("0 || 0 || 9", 9.0),
        ("1 && 2 && 0 && 5", 0.0),
        ("--1", 1.0),
        ("-!0", -1.0),
        ("!!5", 1.0),
    ],
)
def test_evaluate_operators_and_functions(formula: str, expected: float) -> None:
    assert evaluate(formula, {}) == pytest.approx(expected)


def test_pi_constant_in_both_spellings() -> None:
    assert evaluate("Math.PI", {}) == pytest.approx(math.pi)
    assert evaluate("2 * PI", {}) == pytest.approx(2 * math.pi)


def test_variables_and_unknown_names_read_as_zero() -> None:
    assert evaluate("length / feed", {"length": 120.0, "feed": 40.0}) == pytest.approx(3.0)
    assert evaluate("length + notDeclared", {"length": 5.0}) == pytest.approx(5.0)


def test_logical_operators_return_operand_values() -> None:
    assert evaluate("radialEngagement || toolDiameter * 0.75", {"toolDiameter": 10.0}) == pytest.approx(7.5)
    assert evaluate("radialEngagement || 3", {"radialEngagement": 4.0}) == pytest.approx(4.0)
    assert evaluate("a && 5", {"a": 0.0}) == 0.0
    assert evaluate("a && 5", {"a": 2.0}) == pytest.approx(5.0)


def test_zero_feed_rate_yields_zero_minutes() -> None:
    variables = {"machiningLength": 100.0, "toolDiameter": 10.0, "feedRate": 0.0}

    assert evaluate("(machiningLength + toolDiameter) / feedRate", variables) == 0.0


@pytest.mark.parametrize(
    "formula",
    [
        "0 / 0",
        "1 / 0",
        "-1 / 0",
        "5 % 0",
        "Math.sqrt(-1)",
        "Math.pow(0, -1)",
        "Math.pow(10, 400)",
        "Math.pow(-8, 0.5)",
        "1e308 * 10",
        "1e999",
        "1e308 * 10 - 1e308 * 10",
    ],
)
def test_non_finite_results_collapse_to_zero(formula: str) -> None:
    assert evaluate(formula, {}) == 0.0


def test_grinding_dressing_guard_uses_conditional() -> None:
    formula = "(partsBetweenDress > 0 ? dressingTime / partsBetweenDress : 0) + handlingTime"

    assert evaluate(formula, {"dressingTime": 4.0, "partsBetweenDress": 0.0, "handlingTime": 1.0}) == 1.0
    assert evaluate(formula, {"dressingTime": 4.0, "partsBetweenDress": 8.0, "handlingTime": 1.0}) == 1.5


def test_long_operator_chains_evaluate() -> None:
    assert evaluate(" + ".join(["a"] * 201), {"a": 1.0}) == pytest.approx(201.0)
    assert evaluate(" - ".join(["a"] * 900), {"a": 1.0}) == pytest.approx(-898.0)
    assert evaluate(" * ".join(["1"] * 900) + " * 7", {}) == pytest.approx(7.0)
    assert evaluate(" || ".join(["0"] * 300) + " || 7", {}) == pytest.approx(7.0)


def test_deep_grouping_calls_and_signs_evaluate() -> None:
    assert evaluate("(" * 40 + "a" + ")" * 40, {"a": 2.0}) == 2.0
    assert evaluate("abs(" * 30 + "-3" + ")" * 30, {}) == 3.0
    assert evaluate("-" * 100 + "1", {}) == 1.0
    assert evaluate("!" * 101 + "0", {}) == 1.0


def test_compiled_formula_reports_names_and_reuses_parse() -> None:
    first = compile_formula("(faceLength + toolDiameter) / feedRate")
    second = compile_formula("(faceLength + toolDiameter) / feedRate")

    assert first is second
    assert first.names == frozenset({"faceLength", "toolDiameter", "feedRate"})
    assert first.evaluate({"faceLength": 90.0, "toolDiameter": 10.0, "feedRate": 50.0}) == pytest.approx(2.0)


_ATOMS = ("0", "1", "2.5", "1e308", "x", "y", "z", "Math.PI", "-1")
_BINARY = ("+", "-", "*", "/", "%", "<", ">=", "==", "!=", "||", "&&")
_UNARY_FUNCTIONS = ("ceil", "Math.floor", "round", "Math.sqrt", "abs")
_VARIADIC = ("pow", "Math.max", "min")


def _random_formula(rng: random.Random, depth: int) -> str:
    if depth == 0 or rng.random() < 0.25:
        return rng.choice(_ATOMS)
    kind = rng.randrange(5)
    if kind == 0:
        left = _random_formula(rng, depth - 1)
        right = _random_formula(rng, depth - 1)
        return f"({left} {rng.choice(_BINARY)} {right})"
    if kind == 1:
        return f"{rng.choice(_UNARY_FUNCTIONS)}({_random_formula(rng, depth - 1)})"
    if kind == 2:
        args = ", ".join(_random_formula(rng, depth - 1) for _ in range(2))
        return f"{rng.choice(_VARIADIC)}({args})"
    if kind == 3:
        parts = [_random_formula(rng, depth - 1) for _ in range(3)]
        return f"({parts[0]} ? {parts[1]} : {parts[2]})"
    return f"{rng.choice('-!')}({_random_formula(rng, depth - 1)})"


@pytest.mark.parametrize("seed", range(25))
def test_whitelisted_formulas_never_raise_or_return_non_finite(seed: int) -> None:
    rng = random.Random(seed)
    variables = {"x": 0.0, "y": -3.0, "z": 1e300}

    for _ in range(40):
        formula = _random_formula(rng, 5)
        value = evaluate(formula, variables)
        assert math.isfinite(value), formula
