# src/plumbline/engine/backends/polars_backend.py
from __future__ import annotations

"""
Polars Backend

Wraps a `pl.DataFrame` or `pl.LazyFrame`. Internally everything is a lazy
plan; each question the executor asks is one `collect()`. Eager inputs are
handed back to user callables as eager frames, lazy inputs stay lazy.
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import polars as pl

from plumbline.engine.backends.base import is_float_type, normalize_value
from plumbline.engine.predicates import CompileContext, Node
from plumbline.errors import ExecutionError

# Scratch column holding an evaluated row predicate
_PRED = "__plumbline_pred"


class PolarsTable:
    name = "polars"

    def __init__(self, data: Union[pl.DataFrame, pl.LazyFrame]):
        if isinstance(data, pl.DataFrame):
            self._eager = True
            self._lf = data.lazy()
            self._df: Optional[pl.DataFrame] = data
        elif isinstance(data, pl.LazyFrame):
            self._eager = False
            self._lf = data
            self._df = None
        else:
            raise TypeError(f"PolarsTable expects a polars frame, got {type(data).__name__}")
        self._schema: Optional[List[Tuple[str, str]]] = None
        self._ctx: Optional[CompileContext] = None

    def __repr__(self) -> str:
        kind = "DataFrame" if self._eager else "LazyFrame"
        return f"PolarsTable({kind}, columns={self.columns()})"

    # ------------------------------------------------------------------ #

    @property
    def native(self) -> Union[pl.DataFrame, pl.LazyFrame]:
        if not self._eager:
            return self._lf
        if self._df is None:
            self._df = self._lf.collect()
        return self._df

    def columns(self) -> List[str]:
        return [n for n, _ in self.schema()]

    def schema(self) -> List[Tuple[str, str]]:
        if self._schema is None:
            sch = self._lf.collect_schema()
            self._schema = [(n, str(dt.base_type())) for n, dt in sch.items()]
        return self._schema

    def context(self) -> CompileContext:
        if self._ctx is None:
            floats = frozenset(n for n, t in self.schema() if is_float_type(t))
            self._ctx = CompileContext(float_cols=floats)
        return self._ctx

    def row_count(self) -> int:
        if self._df is not None:
            return self._df.height
        return int(self._lf.select(pl.len()).collect().item())

    # ------------------------------------------------------------------ #

    def _with_predicate(self, pred: Node) -> pl.LazyFrame:
        """
        The frame plus `pred` as a column. Scalar predicates broadcast to every
        row; anything that is not one boolean per row is rejected.
        """
        lf = self._lf.with_columns(pred.to_polars(self.context()).alias(_PRED))
        dtype = lf.collect_schema()[_PRED]
        if dtype != pl.Boolean and dtype != pl.Null:
            raise ExecutionError(f"Row predicate must evaluate to booleans, got {dtype}")
        return lf

    def tally(self, pred: Node, na_pass: Optional[bool]) -> Tuple[int, int]:
        out = self._with_predicate(pred).select(
            pl.len().alias("n"),
            pl.col(_PRED).fill_null(bool(na_pass)).cast(pl.Int64).sum().alias("n_passed"),
        ).collect()
        row = out.row(0, named=True)
        return int(row["n"]), int(row["n_passed"] or 0)

    def filter(self, pred: Node) -> "PolarsTable":
        lf = self._with_predicate(pred).filter(pl.col(_PRED).fill_null(False)).drop(_PRED)
        return PolarsTable(lf.collect() if self._eager else lf)

    def failing(self, pred: Node, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        lf = self._with_predicate(pred).filter(~pl.col(_PRED).fill_null(bool(na_pass))).drop(_PRED)
        if limit is not None:
            lf = lf.head(limit)
        return lf.collect()

    def failing_mask(self, mask: pl.Series, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        df = self.collect()
        out = df.filter(~mask.fill_null(bool(na_pass)))
        return out.head(limit) if limit is not None else out

    def distinct_values(self, column: str) -> List[Any]:
        s = self._lf.select(pl.col(column).unique(maintain_order=True)).collect().to_series()
        seen: List[Any] = []
        for v in s.to_list():
            v = normalize_value(v)
            if v not in seen:
                seen.append(v)
        return seen

    def count_duplicate_rows(self, columns: Sequence[str]) -> int:
        out = self._lf.select(
            pl.struct(list(columns)).is_duplicated().cast(pl.Int64).sum().alias("d")
        ).collect()
        return int(out.item() or 0)

    def duplicate_rows(self, columns: Sequence[str], limit: Optional[int]) -> pl.DataFrame:
        lf = self._lf.filter(pl.struct(list(columns)).is_duplicated())
        if limit is not None:
            lf = lf.head(limit)
        return lf.collect()

    def apply(self, fn: Callable[[Any], Any]) -> Any:
        from plumbline.engine.backends.registry import wrap_table

        return wrap_table(fn(self.native))

    def collect(self, limit: Optional[int] = None) -> pl.DataFrame:
        if limit is None:
            return self._df if self._df is not None else self._lf.collect()
        return self._lf.head(limit).collect()

    def split(self, pred: Node) -> Tuple[pl.DataFrame, pl.DataFrame]:
        """(rows where pred is true, all other rows)."""
        lf = self._with_predicate(pred)
        keep = pl.col(_PRED).fill_null(False)
        return lf.filter(keep).drop(_PRED).collect(), lf.filter(~keep).drop(_PRED).collect()
