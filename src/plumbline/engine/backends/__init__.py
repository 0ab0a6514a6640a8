from plumbline.engine.backends.duckdb_backend import DuckDBTable
from plumbline.engine.backends.polars_backend import PolarsTable
from plumbline.engine.backends.registry import wrap_table

__all__ = ["DuckDBTable", "PolarsTable", "wrap_table"]
