# src/plumbline/plan/schema.py
"""
Declared table schemas for `col_schema_match`.

    schema = col_schema(a="Int64", b="String", c=None)   # c: presence only
    schema = ColSchema.from_table(reference_df)          # copy a known-good table

Types may be given as backend type names ("BIGINT", "Int64"), as portable
categories ("integer", "character", ...), or as polars dtypes. Matching is
case-insensitive and ignores type parameters (`Decimal(18, 3)` ~ `decimal`).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from plumbline.engine.backends.base import base_type_name, type_category

CATEGORIES = (
    "character", "integer", "numeric", "logical", "date", "datetime", "categorical", "other",
)


def _type_label(t: Any) -> Optional[str]:
    if t is None:
        return None
    if isinstance(t, str):
        return t
    # polars dtype classes / instances render as their name
    return str(t)


class ColSchema:
    """Ordered (name, type) pairs; a type of None only requires presence."""

    def __init__(self, columns: Iterable[Tuple[str, Any]]):
        cols: List[Tuple[str, Optional[str]]] = []
        seen = set()
        for name, typ in columns:
            if not isinstance(name, str) or not name:
                raise ValueError(f"Schema column names must be non-empty strings, got {name!r}")
            if name in seen:
                raise ValueError(f"Column '{name}' is declared twice")
            seen.add(name)
            cols.append((name, _type_label(typ)))
        if not cols:
            raise ValueError("A schema needs at least one column")
        self.columns = cols

    @classmethod
    def from_table(cls, tbl: Any) -> "ColSchema":
        from plumbline.engine.backends.registry import wrap_table

        return cls(wrap_table(tbl).schema())

    @classmethod
    def coerce(cls, value: Union["ColSchema", Dict[str, Any], Iterable[Tuple[str, Any]]]) -> "ColSchema":
        if isinstance(value, ColSchema):
            return value
        if isinstance(value, dict):
            return cls(value.items())
        return cls(value)

    @property
    def names(self) -> List[str]:
        return [n for n, _ in self.columns]

    def __len__(self) -> int:
        return len(self.columns)

    def __repr__(self) -> str:
        inner = ", ".join(f"{n}={t!r}" for n, t in self.columns)
        return f"col_schema({inner})"

    __str__ = __repr__


def col_schema(**types: Any) -> ColSchema:
    """Build a ColSchema from keyword arguments (order is kept)."""
    return ColSchema(types.items())


def type_matches(declared: str, actual: str) -> bool:
    """Declared type vs. a backend type name, by exact base name or by category."""
    want = base_type_name(declared).lower()
    if want == base_type_name(actual).lower() or want == actual.lower():
        return True
    return want in CATEGORIES and want == type_category(actual)


def match_schema(
    declared: ColSchema,
    actual: List[Tuple[str, str]],
    complete: bool = True,
    in_order: bool = True,
) -> Tuple[bool, List[str]]:
    """
    Compare a declared schema against the table's (name, type) pairs.

    Returns (matched, problems) where `problems` lists each mismatch found.
    """
    problems: List[str] = []
    actual_types = dict(actual)
    actual_names = [n for n, _ in actual]

    for name, typ in declared.columns:
        if name not in actual_types:
            problems.append(f"missing column '{name}'")
        elif typ is not None and not type_matches(typ, actual_types[name]):
            problems.append(f"column '{name}' is {actual_types[name]}, expected {typ}")

    if complete:
        extra = [n for n in actual_names if n not in declared.names]
        if extra:
            problems.append("unexpected column(s): " + ", ".join(extra))

    if in_order:
        present = [n for n in declared.names if n in actual_types]
        positions = [actual_names.index(n) for n in present]
        if positions != sorted(positions):
            problems.append("columns are not in the declared order")

    return not problems, problems
