# src/plumbline/engine/executor.py
"""
Step Executor.

    execute(assertion_type, table, column, params, na_pass) -> Outcome

One handler per assertion kind, registered with `@handles(...)`. The set of
kinds is closed: importing this module fails if any AssertionType lacks a
handler.

Row-wise kinds are expressed as predicate trees (`row_predicate`) so the
same handler runs on every backend; the backend decides whether it becomes
a polars expression or a SQL fragment.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import polars as pl

from plumbline.engine.aggregate import Outcome
from plumbline.engine.backends.base import to_mask, type_category
from plumbline.engine.predicates import (
    Coalesce,
    Col,
    Cmp,
    IsIn,
    IsNull,
    Node,
    Not,
    Raw,
    Regex,
    all_present,
    between,
    conj,
)
from plumbline.engine.resolver import resolve_columns, resolve_term
from plumbline.errors import ExecutionError, StepError
from plumbline.logging import get_logger
from plumbline.plan.schema import ColSchema, match_schema
from plumbline.plan.types import AssertionType as A

_logger = get_logger(__name__)

Handler = Callable[[A, Any, Any, Dict[str, Any], Optional[bool]], Outcome]

# Registry: assertion type -> handler
_HANDLERS: Dict[A, Handler] = {}


def handles(*types: A):
    """Decorator registering a handler for one or more assertion kinds."""

    def deco(fn: Handler) -> Handler:
        for t in types:
            if t in _HANDLERS:
                raise ValueError(f"Assertion '{t}' already has a handler.")
            _HANDLERS[t] = fn
        return fn

    return deco


def execute(
    assertion_type: A,
    table: Any,
    column: Any,
    params: Dict[str, Any],
    na_pass: Optional[bool] = None,
) -> Outcome:
    """
    Run one check against one (already transformed) table.

    Raises:
        ResolutionError / ExecutionError: captured on the step by the caller
    """
    handler = _HANDLERS[assertion_type]
    try:
        return handler(assertion_type, table, column, params, na_pass)
    except StepError:
        raise
    except Exception as e:
        raise ExecutionError(f"{assertion_type} failed: {type(e).__name__}: {e}") from e


# --------------------------------------------------------------------------- #
# Row predicates
# --------------------------------------------------------------------------- #

_COMPARISONS = {
    A.GT: ">",
    A.GTE: ">=",
    A.LT: "<",
    A.LTE: "<=",
    A.EQUAL: "==",
    A.NOT_EQUAL: "!=",
}


def _membership(column: str, values: Sequence[Any], negate: bool) -> Node:
    """
    in_set / not_in_set. A missing value is a member only when None is
    listed, so NULL outcomes are settled here rather than by na_pass.
    """
    has_none = any(v is None for v in values)
    hit = IsIn(Col(column), tuple(v for v in values if v is not None))
    if negate:
        return Coalesce(Not(hit), not has_none)
    return Coalesce(hit, has_none)


def row_predicate(assertion_type: A, column: Optional[str], params: Dict[str, Any], table: Any) -> Node:
    """
    Predicate (true = row passes) for a row-wise assertion.

    NULL outcomes are left in place; the caller scores them with na_pass.
    """
    cols = table.columns()

    if assertion_type in _COMPARISONS:
        term = resolve_term(params["value"], cols, table.native)
        return Cmp(_COMPARISONS[assertion_type], Col(column), term)

    if assertion_type in (A.BETWEEN, A.NOT_BETWEEN):
        left = resolve_term(params["left"], cols, table.native)
        right = resolve_term(params["right"], cols, table.native)
        inside = between(Col(column), left, right, params.get("inclusive", (True, True)))
        return inside if assertion_type == A.BETWEEN else Not(inside)

    if assertion_type == A.IN_SET:
        return _membership(column, params["set"], negate=False)
    if assertion_type == A.NOT_IN_SET:
        return _membership(column, params["set"], negate=True)

    if assertion_type == A.REGEX:
        return Regex(Col(column), params["regex"])
    if assertion_type == A.NULL:
        return IsNull(Col(column))
    if assertion_type == A.NOT_NULL:
        return Not(IsNull(Col(column)))

    if assertion_type == A.COL_VALS_EXPR:
        e = params["expr"]
        if callable(e) and not isinstance(e, pl.Expr):
            raise ExecutionError(
                "A callable col_vals_expr cannot be combined with other checks; "
                "pass a SQL string or a polars expression"
            )
        return Raw(e)

    raise ExecutionError(f"'{assertion_type}' is not a row-wise assertion")


def _tally_outcome(table: Any, pred: Node, na_pass: Optional[bool]) -> Outcome:
    n, n_passed = table.tally(pred, na_pass)
    return Outcome(n, n_passed, extract=lambda limit: table.failing(pred, na_pass, limit))


# --------------------------------------------------------------------------- #
# Row-wise handlers
# --------------------------------------------------------------------------- #

@handles(
    A.GT, A.GTE, A.LT, A.LTE, A.EQUAL, A.NOT_EQUAL,
    A.BETWEEN, A.NOT_BETWEEN, A.REGEX, A.NULL, A.NOT_NULL,
)
def _compare(at, table, column, params, na_pass) -> Outcome:
    return _tally_outcome(table, row_predicate(at, column, params, table), na_pass)


@handles(A.IN_SET, A.NOT_IN_SET)
def _in_set(at, table, column, params, na_pass) -> Outcome:
    # NULL handling is decided by the set contents
    pred = row_predicate(at, column, params, table)
    return _tally_outcome(table, pred, False)


@handles(A.COL_VALS_EXPR)
def _col_vals_expr(at, table, column, params, na_pass) -> Outcome:
    e = params["expr"]
    if isinstance(e, (str, pl.Expr)):
        return _tally_outcome(table, Raw(e), na_pass)

    result = e(table.native)
    if isinstance(result, (str, pl.Expr)):
        return _tally_outcome(table, Raw(result), na_pass)

    mask = _checked_mask(result, table.row_count())
    return _mask_outcome(table, mask, na_pass)


def _checked_mask(result: Any, expected: Optional[int]) -> pl.Series:
    try:
        mask = to_mask(result)
    except TypeError as e:
        raise ExecutionError(str(e)) from e
    if expected is not None and mask.len() != expected:
        raise ExecutionError(
            f"Expression returned {mask.len()} values for a table of {expected} rows"
        )
    return mask


def _mask_outcome(table: Any, mask: pl.Series, na_pass: Optional[bool]) -> Outcome:
    n = mask.len()
    n_passed = int(mask.fill_null(bool(na_pass)).sum() or 0)
    return Outcome(n, n_passed, extract=lambda limit: table.failing_mask(mask, na_pass, limit))


@handles(A.CONJOINTLY)
def _conjointly(at, table, column, params, na_pass) -> Outcome:
    """A row passes only when every sub-assertion passes for that row."""
    parts: List[Node] = []
    for sub in params["steps"]:
        targets = [None] if sub.column is None else resolve_columns(sub.column, table.columns())
        for c in targets:
            pred = row_predicate(sub.assertion_type, c, sub.params, table)
            if sub.assertion_type in (A.IN_SET, A.NOT_IN_SET):
                parts.append(pred)
            else:
                parts.append(Coalesce(pred, bool(sub.na_pass)))
    return _tally_outcome(table, conj(*parts), False)


# --------------------------------------------------------------------------- #
# Set-level handlers
# --------------------------------------------------------------------------- #

def _present(observed: Sequence[Any], value: Any) -> bool:
    if value is None:
        return any(v is None for v in observed)
    return any(v is not None and v == value for v in observed)


@handles(A.MAKE_SET, A.MAKE_SUBSET)
def _make_set(at, table, column, params, na_pass) -> Outcome:
    """
    One test unit per required element; make_set adds a final unit that
    passes only when nothing outside the set was seen.
    """
    required = list(params["set"])
    observed = table.distinct_values(column)

    units = [_present(observed, v) for v in required]
    extract = None
    if at == A.MAKE_SET:
        foreign = [v for v in observed if not _present(required, v)]
        units.append(not foreign)
        if foreign:
            pred = _membership(column, required, negate=False)
            extract = lambda limit: table.failing(pred, False, limit)  # noqa: E731

    return Outcome(len(units), sum(1 for u in units if u), extract=extract)


# --------------------------------------------------------------------------- #
# Column-level handlers
# --------------------------------------------------------------------------- #

@handles(A.COL_EXISTS)
def _col_exists(at, table, column, params, na_pass) -> Outcome:
    return Outcome(1, 1 if column in table.columns() else 0)


_TYPE_CHECKS = {
    A.COL_IS_CHARACTER: {"character"},
    A.COL_IS_NUMERIC: {"numeric", "integer"},
    A.COL_IS_INTEGER: {"integer"},
    A.COL_IS_LOGICAL: {"logical"},
    A.COL_IS_DATE: {"date"},
    A.COL_IS_POSIX: {"datetime"},
    A.COL_IS_FACTOR: {"categorical"},
}


@handles(*_TYPE_CHECKS)
def _col_is(at, table, column, params, na_pass) -> Outcome:
    types = dict(table.schema())
    category = type_category(types[column])
    return Outcome(1, 1 if category in _TYPE_CHECKS[at] else 0)


# --------------------------------------------------------------------------- #
# Table-level handlers
# --------------------------------------------------------------------------- #

@handles(A.ROWS_DISTINCT)
def _rows_distinct(at, table, column, params, na_pass) -> Outcome:
    columns = list(column) if column else table.columns()
    dups = table.count_duplicate_rows(columns)
    if dups == 0:
        return Outcome(1, 1)
    return Outcome(1, 0, extract=lambda limit: table.duplicate_rows(columns, limit))


@handles(A.ROWS_COMPLETE)
def _rows_complete(at, table, column, params, na_pass) -> Outcome:
    columns = list(column) if column else table.columns()
    pred = all_present(columns)
    n, n_complete = table.tally(pred, False)
    if n_complete == n:
        return Outcome(1, 1)
    return Outcome(1, 0, extract=lambda limit: table.failing(pred, False, limit))


@handles(A.COL_SCHEMA_MATCH)
def _col_schema_match(at, table, column, params, na_pass) -> Outcome:
    declared = ColSchema.coerce(params["schema"])
    ok, problems = match_schema(
        declared,
        table.schema(),
        complete=params.get("complete", True),
        in_order=params.get("in_order", True),
    )
    if not ok:
        _logger.debug("Schema mismatch: %s", "; ".join(problems))
    return Outcome(1, 1 if ok else 0)


@handles(A.SPECIALLY)
def _specially(at, table, column, params, na_pass) -> Outcome:
    """A user function of the table; a bool is one test unit, a vector is many."""
    result = params["fn"](table.native)
    if isinstance(result, bool) or type(result).__name__ == "bool_":
        return Outcome(1, 1 if result else 0)
    mask = _checked_mask(result, None)
    n = mask.len()
    if n == table.row_count():
        return _mask_outcome(table, mask, False)
    return Outcome(n, int(mask.fill_null(False).sum() or 0))


# --------------------------------------------------------------------------- #

def _check_exhaustive() -> None:
    missing = [t.value for t in A if t not in _HANDLERS]
    if missing:
        raise RuntimeError(f"No executor handler for: {', '.join(missing)}")


_check_exhaustive()
