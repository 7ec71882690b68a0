"""
AST node types.

Expressions form a closed set of variants: Number, Variable, Binary, Call and
Assign. Nodes are immutable and own their children; every expression
evaluates to a double.
"""

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Binary:
    op: str
    lhs: "Expr"
    rhs: "Expr"


@dataclass(frozen=True)
class Call:
    callee: str
    args: Tuple["Expr", ...] = ()


@dataclass(frozen=True)
class Assign:
    target: str
    value: "Expr"


Expr = Union[Number, Variable, Binary, Call, Assign]


@dataclass(frozen=True)
class Prototype:
    name: str
    params: Tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass(frozen=True)
class Function:
    proto: Prototype
    body: Expr


ANON_EXPR_NAME = "__anon_expr"


def anonymous(body: Expr) -> Function:
    """Wrap a top-level expression in a zero-argument function."""
    return Function(Prototype(ANON_EXPR_NAME), body)


def is_anonymous(fn: Function) -> bool:
    return fn.proto.name == ANON_EXPR_NAME
