# src/plumbline/plan/briefs.py
"""
Autobriefs: a one-line description of a step, used when the user gives none.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence

from plumbline.plan.refs import ColumnRef, Literal, Selector, describe
from plumbline.plan.types import AssertionType as A

_OPERATORS = {
    A.GT: ">",
    A.GTE: ">=",
    A.LT: "<",
    A.LTE: "<=",
    A.EQUAL: "==",
    A.NOT_EQUAL: "!=",
}

_TYPE_WORDS = {
    A.COL_IS_CHARACTER: "character",
    A.COL_IS_NUMERIC: "numeric",
    A.COL_IS_INTEGER: "integer",
    A.COL_IS_LOGICAL: "logical",
    A.COL_IS_DATE: "date",
    A.COL_IS_POSIX: "date-time",
    A.COL_IS_FACTOR: "categorical",
}


def _value(v: Any) -> str:
    if isinstance(v, ColumnRef):
        return f"`{v.name}`"
    if isinstance(v, Literal):
        return repr(v.value) if isinstance(v.value, str) else str(v.value)
    return str(v)


def _precondition(fn: Callable[..., Any]) -> str:
    name = getattr(fn, "__name__", None)
    return name if name and name != "<lambda>" else "<function>"


def _computed(column: Any, known_columns: Optional[Sequence[str]]) -> bool:
    if known_columns is None or not isinstance(column, str):
        return False
    return column not in known_columns


def _column(column: Any, computed: bool) -> str:
    if column is None:
        return ""
    if isinstance(column, Selector):
        label = f"columns matching {column}"
    elif isinstance(column, (list, tuple)):
        label = ", ".join(f"`{c}`" for c in column)
    else:
        label = f"`{describe(column)}`"
    return label + (" (computed column)" if computed else "")


def _set(values: Any) -> str:
    return ", ".join(repr(v) for v in values)


def autobrief(
    assertion_type: A,
    column: Any = None,
    params: Optional[Dict[str, Any]] = None,
    preconditions: Any = None,
    known_columns: Optional[Sequence[str]] = None,
) -> str:
    """
    Describe what a step expects.

    With preconditions, the brief names the precondition and flags a target
    column that is not among `known_columns` (the bound table's columns) as
    computed. Without `known_columns` no column is flagged.
    """
    computed = preconditions is not None and _computed(column, known_columns)
    brief = _describe(assertion_type, column, params or {}, computed)
    if preconditions is None:
        return brief
    clause = f"when the precondition `{_precondition(preconditions)}` is applied, "
    if brief.startswith("Expect that "):
        return "Expect that " + clause + brief[len("Expect that "):]
    return clause[0].upper() + clause[1:] + brief[0].lower() + brief[1:]


def _describe(t: A, column: Any, p: Dict[str, Any], computed: bool) -> str:
    col = _column(column, computed)
    if t in _OPERATORS:
        return f"Expect that values in {col} should be {_OPERATORS[t]} {_value(p['value'])}."
    if t in (A.BETWEEN, A.NOT_BETWEEN):
        inc = p.get("inclusive", (True, True))
        lo, hi = ("[" if inc[0] else "("), ("]" if inc[1] else ")")
        rng = f"{lo}{_value(p['left'])}, {_value(p['right'])}{hi}"
        word = "between" if t == A.BETWEEN else "not between"
        return f"Expect that values in {col} should be {word} {rng}."
    if t == A.IN_SET:
        return f"Expect that values in {col} should be in the set of {_set(p['set'])}."
    if t == A.NOT_IN_SET:
        return f"Expect that values in {col} should not be in the set of {_set(p['set'])}."
    if t == A.MAKE_SET:
        return f"Expect that values in {col} should make up the set of {_set(p['set'])}."
    if t == A.MAKE_SUBSET:
        return f"Expect that values in {col} should make up a subset of {_set(p['set'])}."
    if t == A.REGEX:
        return f"Expect that values in {col} should match the regular expression: {p['regex']}."
    if t == A.NULL:
        return f"Expect that all values in {col} should be NULL."
    if t == A.NOT_NULL:
        return f"Expect that all values in {col} should not be NULL."
    if t == A.COL_EXISTS:
        return f"Expect that column {col} exists."
    if t in _TYPE_WORDS:
        return f"Expect that column {col} is of type: {_TYPE_WORDS[t]}."
    if t == A.ROWS_DISTINCT:
        scope = f" across {col}" if col else ""
        return f"Expect entirely distinct rows{scope}."
    if t == A.ROWS_COMPLETE:
        scope = f" across {col}" if col else ""
        return f"Expect entirely complete rows{scope}."
    if t == A.COL_SCHEMA_MATCH:
        return "Expect that column schemas match."
    if t == A.COL_VALS_EXPR:
        return "Expect that values satisfy the given expression."
    if t == A.CONJOINTLY:
        n = len(p.get("steps", ()))
        return f"Expect conjoint 'pass' units across the following {n} expressions."
    return "Expect that the given function returns TRUE."
