"""Recursive-descent parser producing a small tagged AST.

Grammar, lowest precedence first::

    conditional := logical_or ["?" conditional ":" conditional]
    logical_or  := logical_and {"||" logical_and}
    logical_and := equality {"&&" equality}
    equality    := comparison {("==" | "!=" | "===" | "!==") comparison}
    comparison  := additive {("<" | ">" | "<=" | ">=") additive}
    additive    := term {("+" | "-") term}
    term        := unary {("*" | "/" | "%") unary}
    unary       := {"-" | "+" | "!"} primary
    primary     := NUMBER | "(" conditional ")" | reference
    reference   := ["Math" "."] NAME ["(" [conditional {"," conditional}] ")"]

Only the functions in :data:`FUNCTION_ARITY` may be called and ``Math`` is
the only namespace that may be dereferenced. There are no statements,
assignments or loops, so every parsed formula terminates.

Operator chains of one precedence level become a single :class:`Chain` (or
:class:`Logical`) node and runs of prefix operators a single :class:`Unary`,
so only groups, calls and ternaries make the tree deeper.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Union

from machining_quoter.errors import FormulaError

from .lexer import END, NAME, NUMBER, OP, Token, tokenize

# name -> (min args, max args); ``None`` means unbounded.
FUNCTION_ARITY: dict[str, tuple[int, int | None]] = {
    "ceil": (1, 1),
    "floor": (1, 1),
    "round": (1, 1),
    "sqrt": (1, 1),
    "abs": (1, 1),
    "pow": (2, 2),
    "max": (1, None),
    "min": (1, None),
}

CONSTANT_NAMES = {"PI": "pi", "pi": "pi"}

NAMESPACE = "Math"

# One nesting level costs about a dozen Python frames across parsing and
# evaluation; the reserve covers the caller's own stack.
FRAMES_PER_LEVEL = 12
RESERVED_FRAMES = 250

_EQUALITY = {"==": "==", "===": "==", "!=": "!=", "!==": "!="}
_COMPARISON = {"<", ">", "<=", ">="}
_ADDITIVE = {"+", "-"}
_TERM = {"*", "/", "%"}
_UNARY = {"-", "+", "!"}
_LOGICAL = {"||", "&&"}

# Binary operator levels, loosest first.
_LEVELS: tuple[tuple[str, ...], ...] = (
    ("||",),
    ("&&",),
    tuple(_EQUALITY),
    tuple(_COMPARISON),
    tuple(_ADDITIVE),
    tuple(_TERM),
)


def nesting_limit(max_depth: int) -> int:
    """Return how many groups, calls or ternaries may nest inside each other."""

    budget = (sys.getrecursionlimit() - RESERVED_FRAMES) // FRAMES_PER_LEVEL
    return max(1, min(max_depth, budget))


@dataclass(frozen=True, slots=True)
class Number:
    value: float


@dataclass(frozen=True, slots=True)
class Constant:
    name: str


@dataclass(frozen=True, slots=True)
class Name:
    name: str


@dataclass(frozen=True, slots=True)
class Unary:
    """Prefix operators applied right to left, ``ops[-1]`` first."""

    ops: tuple[str, ...]
    operand: "Node"


@dataclass(frozen=True, slots=True)
class Chain:
    """Left-associative run of arithmetic or relational operators."""

    first: "Node"
    rest: tuple[tuple[str, "Node"], ...]


@dataclass(frozen=True, slots=True)
class Logical:
    op: str
    operands: tuple["Node", ...]


@dataclass(frozen=True, slots=True)
class Conditional:
    test: "Node"
    then: "Node"
    otherwise: "Node"


@dataclass(frozen=True, slots=True)
class Call:
    function: str
    args: tuple["Node", ...]


Node = Union[Number, Constant, Name, Unary, Chain, Logical, Conditional, Call]


class Parser:
    def __init__(self, formula: str, *, max_depth: int) -> None:
        self.formula = formula
        self.max_nesting = nesting_limit(max_depth)
        self._tokens = list(tokenize(formula))
        self._index = 0
        self._nesting = 0

    # -- token helpers -------------------------------------------------
    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        if token.kind != END:
            self._index += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        token = self._current
        return token.kind == OP and token.text in ops

    def _expect_op(self, op: str) -> Token:
        if not self._at_op(op):
            raise self._error(f"Expected {op!r}")
        return self._advance()

    def _error(self, reason: str, token: Token | None = None) -> FormulaError:
        token = token or self._current
        found = "end of formula" if token.kind == END else repr(token.text)
        return FormulaError(f"{reason}, found {found}", formula=self.formula, position=token.position)

    def _enter(self) -> None:
        self._nesting += 1
        if self._nesting > self.max_nesting:
            raise FormulaError(
                f"Formula nesting exceeds the limit of {self.max_nesting}",
                formula=self.formula,
                position=self._current.position,
            )

    def _leave(self) -> None:
        self._nesting -= 1

    # -- grammar -------------------------------------------------------
    def parse(self) -> Node:
        if self._current.kind == END:
            raise FormulaError("Formula is empty", formula=self.formula, position=0)
        node = self._conditional()
        if self._current.kind != END:
            raise self._error("Unexpected token")
        return node

    def _conditional(self) -> Node:
        self._enter()
        try:
            test = self._binary()
            if not self._at_op("?"):
                return test
            self._advance()
            then = self._conditional()
            self._expect_op(":")
            otherwise = self._conditional()
            return Conditional(test, then, otherwise)
        finally:
            self._leave()

    def _binary(self, level: int = 0) -> Node:
        if level == len(_LEVELS):
            return self._unary()
        ops = _LEVELS[level]
        first = self._binary(level + 1)
        rest: list[tuple[str, Node]] = []
        while self._at_op(*ops):
            op = self._advance().text
            rest.append((_EQUALITY.get(op, op), self._binary(level + 1)))
        if not rest:
            return first
        if ops[0] in _LOGICAL:
            return Logical(ops[0], (first, *(operand for _, operand in rest)))
        return Chain(first, tuple(rest))

    def _unary(self) -> Node:
        ops: list[str] = []
        while self._at_op(*_UNARY):
            ops.append(self._advance().text)
        operand = self._primary()
        return Unary(tuple(ops), operand) if ops else operand

    def _primary(self) -> Node:
        token = self._current
        if token.kind == NUMBER:
            self._advance()
            return Number(float(token.text))
        if self._at_op("("):
            self._advance()
            node = self._conditional()
            self._expect_op(")")
            return node
        if token.kind == NAME:
            return self._reference()
        raise self._error("Expected a number, name or '('")

    def _reference(self) -> Node:
        token = self._advance()
        name = token.text
        if name == NAMESPACE:
            self._expect_op(".")
            member = self._current
            if member.kind != NAME:
                raise self._error("Expected a Math member")
            self._advance()
            name = member.text
            if name not in FUNCTION_ARITY and name != "PI":
                raise FormulaError(
                    f"Math.{name} is not an allowed function",
                    formula=self.formula,
                    position=member.position,
                )
        elif self._at_op("."):
            raise FormulaError(
                f"Member access on {name!r} is not allowed",
                formula=self.formula,
                position=self._current.position,
            )

        if self._at_op("("):
            return self._call(name, token)

        if name in FUNCTION_ARITY:
            raise self._error(f"Function {name!r} must be called")
        if name in CONSTANT_NAMES:
            return Constant(CONSTANT_NAMES[name])
        return Name(name)

    def _call(self, name: str, token: Token) -> Node:
        if name not in FUNCTION_ARITY:
            raise FormulaError(
                f"Unknown function {name!r}",
                formula=self.formula,
                position=token.position,
            )
        self._expect_op("(")
        args: list[Node] = []
        if not self._at_op(")"):
            args.append(self._conditional())
            while self._at_op(","):
                self._advance()
                args.append(self._conditional())
        self._expect_op(")")

        low, high = FUNCTION_ARITY[name]
        if len(args) < low or (high is not None and len(args) > high):
            expected = str(low) if low == high else f"at least {low}"
            raise FormulaError(
                f"{name}() takes {expected} argument(s), got {len(args)}",
                formula=self.formula,
                position=token.position,
            )
        return Call(name, tuple(args))


def parse(formula: str, *, max_depth: int = 200) -> Node:
    """Parse ``formula`` into an AST, raising :class:`FormulaError` when invalid."""

    return Parser(formula, max_depth=max_depth).parse()


def referenced_names(node: Node) -> frozenset[str]:
    """Return every variable name the AST reads."""

    names: set[str] = set()
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Name):
            names.add(current.name)
        elif isinstance(current, Unary):
            stack.append(current.operand)
        elif isinstance(current, Chain):
            stack.append(current.first)
            stack.extend(operand for _, operand in current.rest)
        elif isinstance(current, Logical):
            stack.extend(current.operands)
        elif isinstance(current, Conditional):
            stack.extend((current.test, current.then, current.otherwise))
        elif isinstance(current, Call):
            stack.extend(current.args)
    return frozenset(names)


__all__ = [
    "Call",
    "Chain",
    "Conditional",
    "Constant",
    "FUNCTION_ARITY",
    "Logical",
    "Name",
    "Node",
    "Number",
    "Parser",
    "Unary",
    "nesting_limit",
    "parse",
    "referenced_names",
]
