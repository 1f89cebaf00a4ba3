"""Tokenizer for process time formulas."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from machining_quoter.errors import FormulaError

NUMBER = "number"
NAME = "name"
OP = "op"
END = "end"

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>===|!==|\|\||&&|==|!=|<=|>=|[-+*/%()<>!?:,.])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    text: str
    position: int


def tokenize(formula: str) -> Iterator[Token]:
    """Yield tokens for ``formula`` followed by a single ``END`` token."""

    pos = 0
    length = len(formula)
    while pos < length:
        match = _TOKEN_RE.match(formula, pos)
        if match is None:
            raise FormulaError(
                f"Unexpected character {formula[pos]!r}",
                formula=formula,
                position=pos,
            )
        kind = match.lastgroup
        if kind != "ws":
            yield Token(kind or OP, match.group(), pos)
        pos = match.end()
    yield Token(END, "", length)


__all__ = ["END", "NAME", "NUMBER", "OP", "Token", "tokenize"]
