"""Nord AST node definitions.

Every node is a frozen dataclass carrying keyword-only ``line`` and ``col``
for source-location tracking.  Locations are excluded from comparison, so a
tree built by hand compares equal to the same tree produced by the parser.
Sequences are stored as tuples; a node never changes after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum, auto
from typing import Any, Optional


# ── Operators ───────────────────────────────────────────────────────────────

class Opcode(Enum):
    ASSIGN = auto()
    OR = auto()
    AND = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    MOD = auto()
    NEG = auto()
    NOT = auto()

    @property
    def symbol(self) -> str:
        return OPCODE_SYMBOLS[self]


OPCODE_SYMBOLS: dict[Opcode, str] = {
    Opcode.ASSIGN: "=",
    Opcode.OR: "||",
    Opcode.AND: "&&",
    Opcode.EQUAL: "==",
    Opcode.NOT_EQUAL: "!=",
    Opcode.LESS: "<",
    Opcode.LESS_EQUAL: "<=",
    Opcode.GREATER: ">",
    Opcode.GREATER_EQUAL: ">=",
    Opcode.ADD: "+",
    Opcode.SUB: "-",
    Opcode.MUL: "*",
    Opcode.DIV: "/",
    Opcode.MOD: "%",
    Opcode.NEG: "-",
    Opcode.NOT: "!",
}

UNARY_OPCODES = frozenset({Opcode.NEG, Opcode.NOT})


# ── Atoms ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Atom:
    """Base class for leaf literal values."""


@dataclass(frozen=True)
class Num(Atom):
    value: int = 0


@dataclass(frozen=True)
class Boolean(Atom):
    value: bool = False


@dataclass(frozen=True)
class String(Atom):
    value: str = ""


@dataclass(frozen=True)
class Identifier(Atom):
    name: str = ""


# ── Base ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Expr:
    """Base class for every AST node."""
    line: int = field(default=0, compare=False, kw_only=True)
    col: int = field(default=0, compare=False, kw_only=True)


# ── Expressions ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Constant(Expr):
    value: Atom = None


@dataclass(frozen=True)
class IfElse(Expr):
    cond: Expr = None
    then_branch: Block = None
    else_branch: Optional[Block] = None


@dataclass(frozen=True)
class Let(Expr):
    name: str = ""
    value: Expr = None


@dataclass(frozen=True)
class Array(Expr):
    elements: tuple = ()


@dataclass(frozen=True)
class Object(Expr):
    fields: tuple[tuple[str, Expr], ...] = ()


@dataclass(frozen=True)
class Lambda(Expr):
    param: Optional[str] = None
    body: Expr = None


@dataclass(frozen=True)
class Block(Expr):
    body: tuple = ()


@dataclass(frozen=True)
class BinaryOp(Expr):
    left: Expr = None
    op: Opcode = None
    right: Expr = None


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: Opcode = None
    operand: Expr = None


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr = None
    arg: Optional[Expr] = None


@dataclass(frozen=True)
class Index(Expr):
    callee: Expr = None
    index: Expr = None


@dataclass(frozen=True)
class Member(Expr):
    callee: Expr = None
    field: str = ""


# ── Serialisation ───────────────────────────────────────────────────────────

def to_dict(node: Any) -> Any:
    """Convert a node (or atom, opcode, sequence) into JSON-ready data.

    Nodes become ``{"kind": <class name>, ...}``; locations are included for
    expressions so that tooling can point back into the source.
    """
    if isinstance(node, Opcode):
        return node.name
    if isinstance(node, (Expr, Atom)):
        data: dict[str, Any] = {"kind": type(node).__name__}
        for f in fields(node):
            data[f.name] = to_dict(getattr(node, f.name))
        return data
    if isinstance(node, (tuple, list)):
        return [to_dict(item) for item in node]
    return node
