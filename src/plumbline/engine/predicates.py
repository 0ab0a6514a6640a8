# src/plumbline/engine/predicates.py
"""
Backend-neutral row predicates.

Row-wise assertions are expressed once as a tiny expression tree and then
compiled by whichever backend owns the table:

    Cmp(">", Col("a"), Lit(5))      ->  pl.col("a") > 5
                                    ->  ("a" > 5)

Every node follows three-valued logic: a missing operand yields NULL, and
the caller decides how NULL is scored (`Coalesce(pred, na_pass)`). Floating
NaN is read as missing on both backends.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, FrozenSet, Sequence, Set, Tuple

import polars as pl

from plumbline.engine.sql_utils import esc_ident, lit_value, nan_to_null, regex_match
from plumbline.errors import ExecutionError


@dataclass(frozen=True)
class CompileContext:
    """Schema facts a compiler needs (which columns are floating point)."""

    float_cols: FrozenSet[str] = frozenset()


class Node:
    def to_polars(self, ctx: CompileContext) -> pl.Expr:  # pragma: no cover - abstract
        raise NotImplementedError

    def to_sql(self, ctx: CompileContext) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    def columns(self) -> Set[str]:
        return set()


# --------------------------------------------------------------------------- #
# Terms
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Col(Node):
    name: str

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        e = pl.col(self.name)
        if self.name in ctx.float_cols:
            e = e.fill_nan(None)
        return e

    def to_sql(self, ctx: CompileContext) -> str:
        c = esc_ident(self.name)
        if self.name in ctx.float_cols:
            return nan_to_null(c)
        return c

    def columns(self) -> Set[str]:
        return {self.name}


@dataclass(frozen=True)
class Lit(Node):
    value: Any

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return pl.lit(self.value)

    def to_sql(self, ctx: CompileContext) -> str:
        return lit_value(self.value)


# --------------------------------------------------------------------------- #
# Predicates
# --------------------------------------------------------------------------- #

_PL_OPS = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}
_SQL_OPS = {">": ">", ">=": ">=", "<": "<", "<=": "<=", "==": "=", "!=": "<>"}


@dataclass(frozen=True)
class Cmp(Node):
    op: str
    left: Node
    right: Node

    def __post_init__(self) -> None:
        if self.op not in _PL_OPS:
            raise ValueError(f"Unknown comparison operator {self.op!r}")

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return _PL_OPS[self.op](self.left.to_polars(ctx), self.right.to_polars(ctx))

    def to_sql(self, ctx: CompileContext) -> str:
        return f"({self.left.to_sql(ctx)} {_SQL_OPS[self.op]} {self.right.to_sql(ctx)})"

    def columns(self) -> Set[str]:
        return self.left.columns() | self.right.columns()


@dataclass(frozen=True)
class And(Node):
    parts: Tuple[Node, ...]

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return reduce(operator.and_, (p.to_polars(ctx) for p in self.parts))

    def to_sql(self, ctx: CompileContext) -> str:
        return "(" + " AND ".join(p.to_sql(ctx) for p in self.parts) + ")"

    def columns(self) -> Set[str]:
        return set().union(*(p.columns() for p in self.parts))


@dataclass(frozen=True)
class Not(Node):
    part: Node

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return ~self.part.to_polars(ctx)

    def to_sql(self, ctx: CompileContext) -> str:
        return f"(NOT {self.part.to_sql(ctx)})"

    def columns(self) -> Set[str]:
        return self.part.columns()


@dataclass(frozen=True)
class IsNull(Node):
    term: Node

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return self.term.to_polars(ctx).is_null()

    def to_sql(self, ctx: CompileContext) -> str:
        return f"({self.term.to_sql(ctx)} IS NULL)"

    def columns(self) -> Set[str]:
        return self.term.columns()


@dataclass(frozen=True)
class IsIn(Node):
    """Membership; NULL input gives NULL. `values` must not contain None."""

    term: Node
    values: Tuple[Any, ...]

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        t = self.term.to_polars(ctx)
        hit = t.is_in(list(self.values)) if self.values else pl.lit(False)
        return pl.when(t.is_null()).then(pl.lit(None, dtype=pl.Boolean)).otherwise(hit)

    def to_sql(self, ctx: CompileContext) -> str:
        t = self.term.to_sql(ctx)
        if not self.values:
            return f"(CASE WHEN {t} IS NULL THEN NULL ELSE FALSE END)"
        items = ", ".join(lit_value(v) for v in self.values)
        return f"({t} IN ({items}))"

    def columns(self) -> Set[str]:
        return self.term.columns()


@dataclass(frozen=True)
class Regex(Node):
    term: Node
    pattern: str

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return self.term.to_polars(ctx).cast(pl.Utf8).str.contains(self.pattern)

    def to_sql(self, ctx: CompileContext) -> str:
        return regex_match(self.term.to_sql(ctx), self.pattern)

    def columns(self) -> Set[str]:
        return self.term.columns()


@dataclass(frozen=True)
class Coalesce(Node):
    """Replace NULL with a definite outcome (the NA policy)."""

    part: Node
    value: bool

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        return self.part.to_polars(ctx).fill_null(self.value)

    def to_sql(self, ctx: CompileContext) -> str:
        return f"COALESCE({self.part.to_sql(ctx)}, {lit_value(self.value)})"

    def columns(self) -> Set[str]:
        return self.part.columns()


@dataclass(frozen=True)
class Raw(Node):
    """
    A user-supplied boolean expression.

    A string is treated as a SQL expression on every backend (polars parses it
    with `pl.sql_expr`); a `pl.Expr` only works on the polars backend.
    """

    expr: Any = field(compare=False)

    def to_polars(self, ctx: CompileContext) -> pl.Expr:
        if isinstance(self.expr, str):
            return pl.sql_expr(self.expr)
        return self.expr

    def to_sql(self, ctx: CompileContext) -> str:
        if isinstance(self.expr, str):
            return f"({self.expr})"
        raise ExecutionError(
            "A polars expression cannot be evaluated against a SQL-backed table; "
            "pass the expression as a SQL string instead"
        )


# --------------------------------------------------------------------------- #
# Builders
# --------------------------------------------------------------------------- #

def conj(*parts: Node) -> Node:
    flat = [p for p in parts if p is not None]
    if not flat:
        return Lit(True)
    if len(flat) == 1:
        return flat[0]
    return And(tuple(flat))


def between(term: Node, left: Node, right: Node, inclusive: Sequence[bool] = (True, True)) -> Node:
    lo_op = ">=" if inclusive[0] else ">"
    hi_op = "<=" if inclusive[1] else "<"
    return And((Cmp(lo_op, term, left), Cmp(hi_op, term, right)))


def all_present(names: Sequence[str]) -> Node:
    """True when none of the columns is missing."""
    return conj(*(Not(IsNull(Col(n))) for n in names))
