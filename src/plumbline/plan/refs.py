# src/plumbline/plan/refs.py
"""
Deferred references.

Nothing in here touches a table when it is built. Every value below is
resolved by the engine at interrogation time, after preconditions ran:

  - Literal(value)      a plain value, used as-is
  - ColumnRef(name)     "compare against the other column", evaluated row-wise
  - Expression(fn)      a table -> value closure, evaluated once per step
  - Selector            a predicate over column names (starts_with(), ...)

Usage:
    agent.col_vals_gt("a", col("b"))              # cross-column
    agent.col_vals_not_null(starts_with("amt_"))  # selector, fans out later
    agent.col_vals_lt("x", 10, active=has_columns("x"))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Sequence, Tuple, Union


# --------------------------------------------------------------------------- #
# Tagged parameter values
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Literal:
    value: Any

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class ColumnRef:
    name: str

    def __str__(self) -> str:
        return f"col({self.name!r})"


@dataclass(frozen=True)
class Expression:
    fn: Callable[[Any], Any]
    label: str = ""

    def __str__(self) -> str:
        return self.label or getattr(self.fn, "__name__", "<expression>")


ParamValue = Union[Literal, ColumnRef, Expression]


def col(name: str) -> ColumnRef:
    """Reference another column; the comparison is evaluated row by row."""
    if not isinstance(name, str) or not name:
        raise TypeError("col() expects a non-empty column name")
    return ColumnRef(name)


def expr(fn: Callable[[Any], Any], label: str = "") -> Expression:
    """Wrap a table -> value function; evaluated against the step's table."""
    if not callable(fn):
        raise TypeError("expr() expects a callable")
    return Expression(fn, label)


def as_param(value: Any) -> ParamValue:
    """Tag a raw user value. Already-tagged values pass through."""
    if isinstance(value, (Literal, ColumnRef, Expression)):
        return value
    return Literal(value)


# --------------------------------------------------------------------------- #
# Column selectors
# --------------------------------------------------------------------------- #

class Selector:
    """
    A deferred set of column names.

    Subclasses implement `_match(names)`; results keep the table's column order.
    Selectors combine with `|` (union) and `&` (intersection).
    """

    label: str = "selector"

    def select(self, names: Sequence[str]) -> List[str]:
        return self._match(list(names))

    def _match(self, names: List[str]) -> List[str]:  # pragma: no cover - abstract
        raise NotImplementedError

    def __or__(self, other: "Selector") -> "Selector":
        return _Union(self, _as_selector(other))

    def __and__(self, other: "Selector") -> "Selector":
        return _Intersection(self, _as_selector(other))

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return self.label


class _Prefix(Selector):
    def __init__(self, prefixes: Tuple[str, ...], ignore_case: bool):
        self.prefixes = prefixes
        self.ignore_case = ignore_case
        self.label = f"starts_with({', '.join(map(repr, prefixes))})"

    def _match(self, names: List[str]) -> List[str]:
        if self.ignore_case:
            pre = tuple(p.lower() for p in self.prefixes)
            return [n for n in names if n.lower().startswith(pre)]
        return [n for n in names if n.startswith(self.prefixes)]


class _Suffix(Selector):
    def __init__(self, suffixes: Tuple[str, ...], ignore_case: bool):
        self.suffixes = suffixes
        self.ignore_case = ignore_case
        self.label = f"ends_with({', '.join(map(repr, suffixes))})"

    def _match(self, names: List[str]) -> List[str]:
        if self.ignore_case:
            suf = tuple(s.lower() for s in self.suffixes)
            return [n for n in names if n.lower().endswith(suf)]
        return [n for n in names if n.endswith(self.suffixes)]


class _Contains(Selector):
    def __init__(self, parts: Tuple[str, ...], ignore_case: bool):
        self.parts = parts
        self.ignore_case = ignore_case
        self.label = f"contains({', '.join(map(repr, parts))})"

    def _match(self, names: List[str]) -> List[str]:
        if self.ignore_case:
            parts = [p.lower() for p in self.parts]
            return [n for n in names if any(p in n.lower() for p in parts)]
        return [n for n in names if any(p in n for p in self.parts)]


class _Matches(Selector):
    def __init__(self, pattern: str, ignore_case: bool):
        self.pattern = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
        self.label = f"matches({pattern!r})"

    def _match(self, names: List[str]) -> List[str]:
        return [n for n in names if self.pattern.search(n)]


class _Everything(Selector):
    label = "everything()"

    def _match(self, names: List[str]) -> List[str]:
        return names


class _OneOf(Selector):
    """Explicit names; missing ones are skipped rather than reported."""

    def __init__(self, names: Tuple[str, ...]):
        self.names = names
        self.label = f"one_of({', '.join(map(repr, names))})"

    def _match(self, names: List[str]) -> List[str]:
        wanted = set(self.names)
        return [n for n in names if n in wanted]


class _Union(Selector):
    def __init__(self, left: Selector, right: Selector):
        self.left, self.right = left, right
        self.label = f"{left.label} | {right.label}"

    def _match(self, names: List[str]) -> List[str]:
        picked = set(self.left._match(names)) | set(self.right._match(names))
        return [n for n in names if n in picked]


class _Intersection(Selector):
    def __init__(self, left: Selector, right: Selector):
        self.left, self.right = left, right
        self.label = f"{left.label} & {right.label}"

    def _match(self, names: List[str]) -> List[str]:
        picked = set(self.left._match(names)) & set(self.right._match(names))
        return [n for n in names if n in picked]


def _as_selector(value: Any) -> Selector:
    if isinstance(value, Selector):
        return value
    if isinstance(value, str):
        return _OneOf((value,))
    if isinstance(value, (list, tuple)):
        return _OneOf(tuple(value))
    raise TypeError(f"Cannot combine a selector with {type(value).__name__}")


def starts_with(*prefixes: str, ignore_case: bool = True) -> Selector:
    return _Prefix(_non_empty(prefixes, "starts_with"), ignore_case)


def ends_with(*suffixes: str, ignore_case: bool = True) -> Selector:
    return _Suffix(_non_empty(suffixes, "ends_with"), ignore_case)


def contains(*parts: str, ignore_case: bool = True) -> Selector:
    return _Contains(_non_empty(parts, "contains"), ignore_case)


def matches(pattern: str, ignore_case: bool = False) -> Selector:
    return _Matches(pattern, ignore_case)


def everything() -> Selector:
    return _Everything()


def one_of(*names: str) -> Selector:
    return _OneOf(_non_empty(names, "one_of"))


def _non_empty(items: Iterable[str], fn: str) -> Tuple[str, ...]:
    out = tuple(items)
    if not out or not all(isinstance(s, str) for s in out):
        raise TypeError(f"{fn}() expects one or more strings")
    return out


# --------------------------------------------------------------------------- #
# Segment marker and active-predicate helper
# --------------------------------------------------------------------------- #

class _AllValues:
    """Marker: segment on every distinct value seen at interrogation time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<all values>"


ALL_VALUES = _AllValues()


def has_columns(*names: Union[str, Selector]) -> Expression:
    """
    Deferred `active=` predicate: True when every name (or selector) is present.

    Example:
        agent.col_vals_gt("b", 2, active=has_columns("b"))
    """
    if not names:
        raise TypeError("has_columns() expects at least one column name")

    def _check(tbl: Any) -> bool:
        from plumbline.engine.backends.registry import wrap_table

        present = wrap_table(tbl).columns()
        for n in names:
            if isinstance(n, Selector):
                if not n.select(present):
                    return False
            elif n not in present:
                return False
        return True

    label = "has_columns(" + ", ".join(str(n) if isinstance(n, Selector) else repr(n) for n in names) + ")"
    return Expression(_check, label)


def describe(ref: Any) -> str:
    """Short human label for a column reference."""
    if ref is None:
        return ""
    if isinstance(ref, str):
        return ref
    if isinstance(ref, (list, tuple)):
        return ", ".join(describe(r) for r in ref)
    return str(ref)
