import duckdb
import polars as pl
import pytest


def load_duckdb(con: duckdb.DuckDBPyConnection, name: str, df: pl.DataFrame) -> duckdb.DuckDBPyRelation:
    """Copy a polars frame into a real duckdb table and return its relation."""
    con.register("_src", df.to_arrow())
    con.execute(f'CREATE OR REPLACE TABLE "{name}" AS SELECT * FROM _src')
    con.unregister("_src")
    return con.table(name)


@pytest.fixture
def con():
    c = duckdb.connect()
    yield c
    c.close()


@pytest.fixture
def small_df():
    """Five rows with a missing int, a NaN float and a missing string."""
    return pl.DataFrame({
        "a": [1, 2, 3, 4, None],
        "b": [2, 2, 2, 5, 1],
        "x": [0.5, 1.0, float("nan"), 2.0, 3.0],
        "s": ["apple", "banana", "cherry", None, "apple"],
        "g": ["g1", "g1", "g2", "g2", "g3"],
    })


@pytest.fixture(params=["polars", "duckdb"])
def small_tbl(request, small_df, con):
    """`small_df` as a polars frame or as a duckdb relation."""
    if request.param == "polars":
        return small_df
    return load_duckdb(con, "small", small_df)


@pytest.fixture
def ten_rows():
    """v = 0..9; `col_vals_gte("v", 3)` fails exactly 3 of 10 units."""
    return pl.DataFrame({"v": list(range(10))})


@pytest.fixture
def small_rel(small_df, con):
    """`small_df` as a duckdb relation only."""
    return load_duckdb(con, "small_rel", small_df)
