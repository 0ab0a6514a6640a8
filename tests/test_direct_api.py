"""Tests for expect() / passes()."""

import polars as pl
import pytest

import plumbline as pb
from plumbline.errors import ExpectationFailed, ResolutionError


@pytest.fixture
def df():
    return pl.DataFrame({"id": [1, 2, 3, 4, 5], "b": [2, 2, 2, 5, 1]})


class TestExpect:
    """expect() returns the table or raises."""

    def test_passes_through(self, df):
        assert pb.expect(df, lambda a: a.col_vals_gt("id", 0)) is df

    def test_raises_on_failure(self, df):
        with pytest.raises(ExpectationFailed, match="1 of 5 test units failed"):
            pb.expect(df, lambda a: a.col_vals_gt("b", 1))

    def test_is_an_assertion_error(self, df):
        with pytest.raises(AssertionError):
            pb.expect(df, lambda a: a.col_vals_in_set("b", [2]))

    def test_threshold(self, df):
        assert pb.expect(df, lambda a: a.col_vals_gt("b", 1), threshold=2) is df

    def test_step_errors_are_raised(self, df):
        with pytest.raises(ResolutionError):
            pb.expect(df, lambda a: a.col_vals_gt("nope", 1))


class TestPasses:
    """passes() returns a bool."""

    def test_true(self, df):
        assert pb.passes(df, lambda a: a.col_vals_not_null("id")) is True

    def test_false(self, df):
        assert pb.passes(df, lambda a: a.col_vals_gt("b", 1)) is False

    def test_fractional_threshold(self, df):
        assert pb.passes(df, lambda a: a.col_vals_gt("b", 1), threshold=0.5) is True

    def test_several_steps(self, df):
        assert pb.passes(df, lambda a: a.col_vals_gt("id", 0).rows_distinct()) is True
