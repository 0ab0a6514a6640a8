"""Tests for declared schemas."""

import polars as pl
import pytest

from plumbline.plan.schema import ColSchema, col_schema, match_schema, type_matches


class TestTypeMatches:
    """Declared types match by base name or by category."""

    @pytest.mark.parametrize(
        "declared,actual,ok",
        [
            ("bigint", "BIGINT", True),
            ("integer", "BIGINT", True),
            ("integer", "Int32", True),
            ("numeric", "DOUBLE", True),
            ("decimal", "DECIMAL(18,3)", True),
            ("character", "VARCHAR", True),
            ("datetime", "TIMESTAMP WITH TIME ZONE", True),
            ("Int64", "BIGINT", False),
            ("integer", "Float64", False),
        ],
    )
    def test_matches(self, declared, actual, ok):
        assert type_matches(declared, actual) is ok


class TestColSchema:
    """Building and comparing schemas."""

    def test_polars_dtypes(self):
        schema = col_schema(a=pl.Int64, b=pl.String)
        assert schema.columns == [("a", "Int64"), ("b", "String")]

    def test_coerce(self):
        assert ColSchema.coerce({"a": None}).names == ["a"]
        assert ColSchema.coerce([("a", "integer")]).columns == [("a", "integer")]

    def test_duplicate_name(self):
        with pytest.raises(ValueError):
            ColSchema([("a", None), ("a", None)])

    def test_from_table(self):
        schema = ColSchema.from_table(pl.DataFrame({"a": [1], "b": ["x"]}))
        assert schema.columns == [("a", "Int64"), ("b", "String")]

    def test_problems_reported(self):
        ok, problems = match_schema(
            col_schema(a="character", c=None),
            [("a", "Int64"), ("b", "String")],
        )
        assert ok is False
        assert "missing column 'c'" in problems
        assert any("expected character" in p for p in problems)
        assert any("unexpected column" in p for p in problems)
