# src/plumbline/engine/resolver.py
"""
Column Resolver.

Turns a step's column reference into concrete column names, and its tagged
parameter values into predicate terms. Always runs against the table as it
looks *after* the step's precondition, so computed columns resolve.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from plumbline.engine.predicates import Col, Lit, Node
from plumbline.errors import ExecutionError, ResolutionError
from plumbline.plan.refs import ColumnRef, Expression, Literal, Selector


def resolve_columns(
    ref: Any,
    available: Sequence[str],
    allow_missing: bool = False,
) -> List[str]:
    """
    Resolve `ref` to an ordered, de-duplicated list of column names.

    Args:
        ref: a name, a ColumnRef, a Selector, or a list/tuple of those
        available: the table's current column names
        allow_missing: keep literal names that are absent (col_exists needs
            to *report* absence rather than fail on it)

    Raises:
        ResolutionError: a literal name is absent, or a selector matches nothing
    """
    available = list(available)
    out: List[str] = []

    def _add(name: str) -> None:
        if name not in out:
            out.append(name)

    def _walk(r: Any) -> None:
        if isinstance(r, ColumnRef):
            r = r.name
        if isinstance(r, str):
            if r not in available and not allow_missing:
                raise ResolutionError(r, available)
            _add(r)
        elif isinstance(r, Selector):
            picked = r.select(available)
            if not picked and not allow_missing:
                raise ResolutionError(str(r), available, detail="selector matched no columns")
            for name in picked:
                _add(name)
        elif isinstance(r, (list, tuple)):
            for item in r:
                _walk(item)
        else:
            raise ResolutionError(r, detail=f"unsupported reference type {type(r).__name__}")

    _walk(ref)
    return out


def resolve_term(value: Any, available: Sequence[str], native: Optional[Any] = None) -> Node:
    """
    Turn a tagged parameter into a predicate term.

    Literal -> Lit; ColumnRef -> Col (must exist); Expression -> evaluated once
    against the step's table, then used as a literal.
    """
    if isinstance(value, ColumnRef):
        if value.name not in available:
            raise ResolutionError(value.name, list(available))
        return Col(value.name)
    if isinstance(value, Literal):
        return Lit(value.value)
    if isinstance(value, Expression):
        try:
            return Lit(value.fn(native))
        except Exception as e:
            raise ExecutionError(f"Value expression {value} failed: {e}") from e
    return Lit(value)

