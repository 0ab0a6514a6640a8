from __future__ import annotations

"""
Table backend interface (protocol)

A backend wraps one tabular object (a polars frame, a duckdb relation) and
answers the handful of questions the step executor asks. The executor never
assumes rows can be iterated in-process: row-wise checks arrive as predicate
trees (`plumbline.engine.predicates`) and each backend compiles them its own
way (polars expressions, SQL fragments).

Design goals:
- Small surface: schema + tally + filter + a few table-level aggregates
- Lazy where the backend is lazy; results only materialize as counts or
  capped row extracts
- Preconditions receive the *native* object and return a native object
"""

from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

import polars as pl

from plumbline.engine.predicates import Node


class TableBackend(Protocol):
    """Capabilities the engine relies on."""

    # Human-readable identifier ("polars", "duckdb")
    name: str

    @property
    def native(self) -> Any:
        """The object user callables (preconditions, specially) receive."""
        ...

    def columns(self) -> List[str]:
        ...

    def schema(self) -> List[Tuple[str, str]]:
        """Ordered (column name, base type name) pairs."""
        ...

    def row_count(self) -> int:
        ...

    def tally(self, pred: Node, na_pass: Optional[bool]) -> Tuple[int, int]:
        """
        Return (n_rows, n_passing) for a row predicate.

        NULL outcomes count as passing only when `na_pass` is True.
        """
        ...

    def filter(self, pred: Node) -> "TableBackend":
        """Rows where `pred` is definitely true."""
        ...

    def failing(self, pred: Node, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        """Up to `limit` rows whose outcome is a failure."""
        ...

    def failing_mask(self, mask: pl.Series, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        """Like `failing`, for a row-aligned boolean mask."""
        ...

    def split(self, pred: Node) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """(rows where `pred` holds, all other rows)."""
        ...

    def distinct_values(self, column: str) -> List[Any]:
        ...

    def count_duplicate_rows(self, columns: Sequence[str]) -> int:
        """Number of rows whose composite value over `columns` occurs more than once."""
        ...

    def duplicate_rows(self, columns: Sequence[str], limit: Optional[int]) -> pl.DataFrame:
        ...

    def apply(self, fn: Callable[[Any], Any]) -> "TableBackend":
        """Run a native table -> native table function (a precondition)."""
        ...

    def collect(self, limit: Optional[int] = None) -> pl.DataFrame:
        """Materialize (optionally the first `limit` rows) as a polars DataFrame."""
        ...


# --------------------------------------------------------------------------- #
# Type categories shared by every backend
# --------------------------------------------------------------------------- #

_CHARACTER = {"string", "utf8", "varchar", "text", "char", "bpchar", "str", "character varying"}
_INTEGER = {
    "int8", "int16", "int32", "int64", "int128",
    "uint8", "uint16", "uint32", "uint64",
    "tinyint", "smallint", "integer", "int", "bigint", "hugeint",
    "utinyint", "usmallint", "uinteger", "ubigint", "uhugeint",
    "int2", "int4",
}
_FLOAT = {"float16", "float32", "float64", "double", "float", "real", "float4", "double precision"}
_DECIMAL = {"decimal", "numeric"}
_LOGICAL = {"boolean", "bool", "logical"}
_DATE = {"date"}
_DATETIME = {
    "datetime", "timestamp", "timestamp with time zone", "timestamptz",
    "timestamp_s", "timestamp_ms", "timestamp_ns", "timestamp_us",
}
_FACTOR = {"categorical", "enum"}


def base_type_name(type_name: str) -> str:
    """Strip parameters: 'DECIMAL(18,3)' -> 'DECIMAL', "Datetime(time_unit='us')" -> 'Datetime'."""
    return type_name.split("(", 1)[0].strip()


def type_category(type_name: str) -> str:
    """
    Map a backend type name onto a portable category:
    character | integer | numeric | logical | date | datetime | categorical | other
    """
    t = base_type_name(type_name).lower()
    if t in _CHARACTER:
        return "character"
    if t in _INTEGER:
        return "integer"
    if t in _FLOAT or t in _DECIMAL:
        return "numeric"
    if t in _LOGICAL:
        return "logical"
    if t in _DATE:
        return "date"
    if t in _DATETIME:
        return "datetime"
    if t in _FACTOR:
        return "categorical"
    return "other"


def is_float_type(type_name: str) -> bool:
    return base_type_name(type_name).lower() in _FLOAT


def normalize_value(v: Any) -> Any:
    """NaN -> None so distinct-value logic treats it as missing."""
    if isinstance(v, float) and v != v:
        return None
    return v


def to_mask(result: Any) -> pl.Series:
    """
    Coerce a user callable's row-wise result into a boolean Series.

    Accepts a polars Series, a pandas/numpy vector, or a plain sequence.
    """
    if isinstance(result, pl.Series):
        s = result
    elif isinstance(result, pl.DataFrame) and result.width == 1:
        s = result.to_series()
    else:
        try:
            values = list(result) if isinstance(result, (list, tuple)) else result
            s = pl.Series("mask", values)
        except (TypeError, ValueError):
            raise TypeError(
                f"Expected a boolean vector, got {type(result).__name__}"
            ) from None
    if s.dtype != pl.Boolean:
        if s.dtype == pl.Null:
            s = s.cast(pl.Boolean)
        else:
            raise TypeError(f"Expected a boolean vector, got dtype {s.dtype}")
    return s.alias("mask")
