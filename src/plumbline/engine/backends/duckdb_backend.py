# src/plumbline/engine/backends/duckdb_backend.py
from __future__ import annotations

"""
DuckDB Backend

Wraps a `duckdb.DuckDBPyRelation`. Row predicates are compiled to SQL and
every question is a single aggregate query over the relation, so database
tables never have to be pulled into the Python process; only capped failing
row extracts are materialized (as polars frames).

Preconditions receive the relation and must return a relation, e.g.

    lambda rel: rel.filter("amount > 0").project("*, amount * 2 AS doubled")
"""

from typing import Any, Callable, List, Optional, Sequence, Tuple

import duckdb
import polars as pl

from plumbline.engine.backends.base import is_float_type, normalize_value
from plumbline.engine.predicates import CompileContext, Node
from plumbline.engine.sql_utils import esc_ident, lit_value

_VIEW = "_plumbline_t"


class DuckDBTable:
    name = "duckdb"

    def __init__(self, relation: duckdb.DuckDBPyRelation):
        if not isinstance(relation, duckdb.DuckDBPyRelation):
            raise TypeError(f"DuckDBTable expects a DuckDBPyRelation, got {type(relation).__name__}")
        self._rel = relation
        self._schema: Optional[List[Tuple[str, str]]] = None
        self._ctx: Optional[CompileContext] = None

    @classmethod
    def from_table(cls, con: duckdb.DuckDBPyConnection, table: str) -> "DuckDBTable":
        """Bind a named table (or view) of an open connection."""
        return cls(con.table(table))

    def __repr__(self) -> str:
        return f"DuckDBTable(columns={self.columns()})"

    # ------------------------------------------------------------------ #

    @property
    def native(self) -> duckdb.DuckDBPyRelation:
        return self._rel

    def columns(self) -> List[str]:
        return list(self._rel.columns)

    def schema(self) -> List[Tuple[str, str]]:
        if self._schema is None:
            self._schema = [
                (n, str(t)) for n, t in zip(self._rel.columns, self._rel.types)
            ]
        return self._schema

    def context(self) -> CompileContext:
        if self._ctx is None:
            floats = frozenset(n for n, t in self.schema() if is_float_type(t))
            self._ctx = CompileContext(float_cols=floats)
        return self._ctx

    def _query(self, sql: str) -> duckdb.DuckDBPyRelation:
        return self._rel.query(_VIEW, sql)

    def _passing_sql(self, pred: Node, na_pass: Optional[bool]) -> str:
        return f"COALESCE({pred.to_sql(self.context())}, {lit_value(bool(na_pass))})"

    def row_count(self) -> int:
        return int(self._query(f"SELECT COUNT(*) FROM {_VIEW}").fetchone()[0])

    # ------------------------------------------------------------------ #

    def tally(self, pred: Node, na_pass: Optional[bool]) -> Tuple[int, int]:
        passing = self._passing_sql(pred, na_pass)
        row = self._query(
            f"SELECT COUNT(*) AS n, "
            f"COALESCE(SUM(CASE WHEN {passing} THEN 1 ELSE 0 END), 0) AS n_passed "
            f"FROM {_VIEW}"
        ).fetchone()
        return int(row[0]), int(row[1])

    def filter(self, pred: Node) -> "DuckDBTable":
        return DuckDBTable(self._rel.filter(f"COALESCE({pred.to_sql(self.context())}, FALSE)"))

    def failing(self, pred: Node, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        rel = self._rel.filter(f"NOT {self._passing_sql(pred, na_pass)}")
        if limit is not None:
            rel = rel.limit(limit)
        return rel.pl()

    def failing_mask(self, mask: pl.Series, na_pass: Optional[bool], limit: Optional[int]) -> pl.DataFrame:
        df = self.collect()
        out = df.filter(~mask.fill_null(bool(na_pass)))
        return out.head(limit) if limit is not None else out

    def distinct_values(self, column: str) -> List[Any]:
        c = esc_ident(column)
        rows = self._query(f"SELECT DISTINCT {c} FROM {_VIEW}").fetchall()
        seen: List[Any] = []
        for (v,) in rows:
            v = normalize_value(v)
            if v not in seen:
                seen.append(v)
        return seen

    def count_duplicate_rows(self, columns: Sequence[str]) -> int:
        cols = ", ".join(esc_ident(c) for c in columns)
        row = self._query(
            f"SELECT COALESCE(SUM(cnt), 0) FROM ("
            f"SELECT COUNT(*) AS cnt FROM {_VIEW} GROUP BY {cols} HAVING COUNT(*) > 1"
            f") AS dup"
        ).fetchone()
        return int(row[0])

    def duplicate_rows(self, columns: Sequence[str], limit: Optional[int]) -> pl.DataFrame:
        cols = ", ".join(esc_ident(c) for c in columns)
        sql = (
            f"SELECT * EXCLUDE (_plumbline_dup) FROM ("
            f"SELECT *, COUNT(*) OVER (PARTITION BY {cols}) AS _plumbline_dup FROM {_VIEW}"
            f") AS w WHERE _plumbline_dup > 1"
        )
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        return self._query(sql).pl()

    def apply(self, fn: Callable[[Any], Any]) -> Any:
        from plumbline.engine.backends.registry import wrap_table

        return wrap_table(fn(self._rel))

    def collect(self, limit: Optional[int] = None) -> pl.DataFrame:
        rel = self._rel if limit is None else self._rel.limit(limit)
        return rel.pl()

    def split(self, pred: Node) -> Tuple[pl.DataFrame, pl.DataFrame]:
        keep = f"COALESCE({pred.to_sql(self.context())}, FALSE)"
        return self._rel.filter(keep).pl(), self._rel.filter(f"NOT {keep}").pl()
