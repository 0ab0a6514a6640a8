# src/plumbline/engine/backends/registry.py
from __future__ import annotations

"""
Backend registry: pick the TableBackend that can wrap a given table object.

Backends register a predicate `accepts(obj)` and a constructor. The first
registered backend that accepts an object wins; adapters (pandas, arrow)
convert to polars before wrapping.
"""

from typing import Any, Callable, Dict, List, Tuple

import duckdb
import polars as pl

from plumbline.engine.backends.duckdb_backend import DuckDBTable
from plumbline.engine.backends.polars_backend import PolarsTable

# Registry: backend_name -> (accepts(obj), ctor(obj))
_BACKENDS: Dict[str, Tuple[Callable[[Any], bool], Callable[[Any], Any]]] = {}
# Simple order for picking when multiple can handle an object
_ORDER: List[str] = []


def register_backend(name: str, accepts: Callable[[Any], bool]):
    """
    Decorator to register a backend constructor under a stable name.
    """

    def deco(ctor: Callable[[Any], Any]) -> Callable[[Any], Any]:
        if name in _BACKENDS:
            raise ValueError(f"Backend '{name}' is already registered.")
        _BACKENDS[name] = (accepts, ctor)
        if name not in _ORDER:
            _ORDER.append(name)
        return ctor

    return deco


def _is_pandas_dataframe(obj: Any) -> bool:
    """Check if object is a pandas DataFrame without importing pandas."""
    return type(obj).__module__.startswith("pandas") and type(obj).__name__ == "DataFrame"


def _is_arrow_table(obj: Any) -> bool:
    return type(obj).__module__.startswith("pyarrow") and type(obj).__name__ == "Table"


@register_backend("polars", lambda obj: isinstance(obj, (pl.DataFrame, pl.LazyFrame)))
def _polars(obj: Any) -> PolarsTable:
    return PolarsTable(obj)


@register_backend("duckdb", lambda obj: isinstance(obj, duckdb.DuckDBPyRelation))
def _duckdb(obj: Any) -> DuckDBTable:
    return DuckDBTable(obj)


@register_backend("pandas", _is_pandas_dataframe)
def _pandas(obj: Any) -> PolarsTable:
    return PolarsTable(pl.from_pandas(obj))


@register_backend("arrow", _is_arrow_table)
def _arrow(obj: Any) -> PolarsTable:
    return PolarsTable(pl.from_arrow(obj))


def is_backend(obj: Any) -> bool:
    return isinstance(obj, (PolarsTable, DuckDBTable))


def supports(obj: Any) -> bool:
    return is_backend(obj) or any(_BACKENDS[n][0](obj) for n in _ORDER)


def wrap_table(obj: Any):
    """
    Return a TableBackend for `obj`.

    Raises:
        TypeError: if no registered backend accepts the object
    """
    if is_backend(obj):
        return obj
    for name in _ORDER:
        accepts, ctor = _BACKENDS[name]
        if accepts(obj):
            return ctor(obj)
    raise TypeError(
        f"Unsupported table type {type(obj).__name__}; expected a polars "
        f"DataFrame/LazyFrame, a duckdb relation, a pandas DataFrame or a pyarrow Table"
    )
