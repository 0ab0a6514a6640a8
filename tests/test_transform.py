"""Tests for preconditions and segmentation."""

import polars as pl
import pytest

from plumbline.engine.backends import PolarsTable
from plumbline.engine.transform import (
    apply_preconditions,
    segment_values,
    split_segments,
    transform,
)
from plumbline.errors import TransformError
from plumbline.plan.refs import ALL_VALUES


@pytest.fixture
def table():
    return PolarsTable(pl.DataFrame({
        "g": ["b", "a", None, "b", "c"],
        "v": [1, 2, 3, 4, 5],
    }))


class TestPreconditions:
    """Preconditions receive the native table and must return one."""

    def test_none_is_identity(self, table):
        assert apply_preconditions(table, None) is table

    def test_returns_new_table(self, table):
        out = apply_preconditions(table, lambda df: df.filter(pl.col("v") > 2))
        assert out.row_count() == 3
        assert table.row_count() == 5

    def test_computed_column(self, table):
        out = apply_preconditions(table, lambda df: df.with_columns((pl.col("v") * 2).alias("v2")))
        assert "v2" in out.columns()

    def test_raising_function(self, table):
        def boom(df):
            raise RuntimeError("no")

        with pytest.raises(TransformError, match="RuntimeError"):
            apply_preconditions(table, boom)

    def test_non_table_result(self, table):
        with pytest.raises(TransformError):
            apply_preconditions(table, lambda df: 42)


class TestSegments:
    """Segment discovery and splitting."""

    def test_values_sorted_missing_last(self, table):
        assert segment_values(table, "g") == ["a", "b", "c", None]

    def test_by_column(self, table):
        parts = split_segments(table, "g", ALL_VALUES)
        assert [(c, v, t.row_count()) for c, v, t in parts] == [
            ("g", "a", 1), ("g", "b", 2), ("g", "c", 1), ("g", None, 1),
        ]

    def test_explicit_value(self, table):
        [(c, v, t)] = split_segments(table, "g", "b")
        assert (c, v, t.row_count()) == ("g", "b", 2)

    def test_unseen_value_is_empty(self, table):
        [(_, _, t)] = split_segments(table, "g", "zzz")
        assert t.row_count() == 0

    def test_missing_segment_column(self, table):
        with pytest.raises(TransformError):
            split_segments(table, "nope", "x")
        with pytest.raises(TransformError):
            segment_values(table, "nope")

    def test_no_segmentation(self, table):
        [(c, v, t)] = split_segments(table, None, None)
        assert c is None and v is None and t is table

    def test_preconditions_run_before_segments(self, table):
        parts = transform(
            table,
            preconditions=lambda df: df.with_columns(pl.lit("k").alias("seg")),
            seg_col="seg",
            seg_val=ALL_VALUES,
        )
        assert [(v, t.row_count()) for _, v, t in parts] == [("k", 5)]
