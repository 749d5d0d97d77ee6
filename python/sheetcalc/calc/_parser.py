"""Formula parser: regex tokenizer + recursive descent into a small expression tree.

Grammar (whitespace ignored)::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | CELL | NAME "(" [expr ("," expr)*] ")" | "(" expr ")"
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Union

from sheetcalc._exceptions import FormulaFormatError
from sheetcalc._utils import format_number, is_valid_name

# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_.]*)
    |(?P<op>[-+*/])
    |(?P<lparen>\()
    |(?P<rparen>\))
    |(?P<comma>,)
    """,
    re.VERBOSE,
)

_WHITESPACE_RE = re.compile(r"\s+")

# Deepest allowed nesting of parentheses, calls and unary signs.
MAX_NESTING = 100


@dataclass(frozen=True)
class Token:
    kind: str  # number | name | op | lparen | rparen | comma
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, raising FormulaFormatError on junk."""
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while pos < length:
        ws = _WHITESPACE_RE.match(text, pos)
        if ws:
            pos = ws.end()
            continue
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise FormulaFormatError(f"Invalid character {text[pos]!r} at position {pos}")
        tokens.append(Token(m.lastgroup or "", m.group(), pos))
        pos = m.end()
    return tokens


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class CellRef:
    name: str  # canonical uppercase


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Call:
    name: str  # uppercase
    args: tuple[Node, ...]


Node = Union[Number, CellRef, UnaryOp, BinaryOp, Call]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    """Recursive descent over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._i = 0
        self._depth = 0

    def _peek(self) -> Token | None:
        if self._i < len(self._tokens):
            return self._tokens[self._i]
        return None

    def _advance(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise FormulaFormatError("Unexpected end of formula")
        self._i += 1
        return tok

    def _expect(self, kind: str) -> Token:
        tok = self._advance()
        if tok.kind != kind:
            raise FormulaFormatError(f"Unexpected token {tok.text!r} at position {tok.pos}")
        return tok

    def _nest(self, tok: Token) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise FormulaFormatError(f"Formula nested too deeply at position {tok.pos}")

    def parse(self) -> Node:
        if not self._tokens:
            raise FormulaFormatError("Formula is empty")
        node = self._expr()
        extra = self._peek()
        if extra is not None:
            raise FormulaFormatError(f"Unexpected token {extra.text!r} at position {extra.pos}")
        return node

    def _expr(self) -> Node:
        node = self._term()
        while True:
            tok = self._peek()
            if tok is None or tok.kind != "op" or tok.text not in "+-":
                return node
            self._i += 1
            node = BinaryOp(tok.text, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            tok = self._peek()
            if tok is None or tok.kind != "op" or tok.text not in "*/":
                return node
            self._i += 1
            node = BinaryOp(tok.text, node, self._unary())

    def _unary(self) -> Node:
        tok = self._peek()
        if tok is not None and tok.kind == "op" and tok.text in "+-":
            self._i += 1
            self._nest(tok)
            node = UnaryOp(tok.text, self._unary())
            self._depth -= 1
            return node
        return self._primary()

    def _primary(self) -> Node:
        tok = self._advance()
        if tok.kind == "number":
            value = float(tok.text)
            if not math.isfinite(value):
                raise FormulaFormatError(f"Number {tok.text!r} out of range at position {tok.pos}")
            return Number(value)
        if tok.kind == "lparen":
            self._nest(tok)
            node = self._expr()
            self._expect("rparen")
            self._depth -= 1
            return node
        if tok.kind == "name":
            nxt = self._peek()
            if nxt is not None and nxt.kind == "lparen":
                self._i += 1
                self._nest(tok)
                call = Call(tok.text.upper(), self._call_args())
                self._depth -= 1
                return call
            if is_valid_name(tok.text):
                return CellRef(tok.text.upper())
            raise FormulaFormatError(f"Invalid variable {tok.text!r} at position {tok.pos}")
        raise FormulaFormatError(f"Unexpected token {tok.text!r} at position {tok.pos}")

    def _call_args(self) -> tuple[Node, ...]:
        nxt = self._peek()
        if nxt is not None and nxt.kind == "rparen":
            self._i += 1
            return ()
        args = [self._expr()]
        while True:
            tok = self._advance()
            if tok.kind == "rparen":
                return tuple(args)
            if tok.kind != "comma":
                raise FormulaFormatError(f"Unexpected token {tok.text!r} at position {tok.pos}")
            args.append(self._expr())


def parse(text: str) -> tuple[Node, list[Token]]:
    """Parse formula text (no leading ``=``) into a tree and its token list."""
    tokens = tokenize(text)
    return _Parser(tokens).parse(), tokens


# ---------------------------------------------------------------------------
# Canonical text and reference extraction
# ---------------------------------------------------------------------------


def canonical_text(tokens: list[Token]) -> str:
    """Render tokens without whitespace, names uppercased, numbers normalized."""
    parts: list[str] = []
    for tok in tokens:
        if tok.kind == "number":
            parts.append(format_number(float(tok.text)))
        elif tok.kind == "name":
            parts.append(tok.text.upper())
        else:
            parts.append(tok.text)
    return "".join(parts)


def references(node: Node) -> list[str]:
    """Distinct cell names referenced by *node*, in first-seen order."""
    refs: list[str] = []
    seen: set[str] = set()
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, CellRef):
            if current.name not in seen:
                refs.append(current.name)
                seen.add(current.name)
        elif isinstance(current, UnaryOp):
            stack.append(current.operand)
        elif isinstance(current, BinaryOp):
            stack.append(current.right)
            stack.append(current.left)
        elif isinstance(current, Call):
            stack.extend(reversed(current.args))
    return refs
