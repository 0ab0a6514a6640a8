"""Each assertion kind, run on both a polars frame and a duckdb relation."""

import datetime as dt

import polars as pl
import pytest

import plumbline as pb
from plumbline.plan.types import StepStatus


def run_one(tbl, build):
    """Build one step on a fresh agent, interrogate, return the single row."""
    agent = pb.create_agent(tbl)
    build(agent)
    agent.interrogate()
    [row] = agent.validation_set
    return row


def units(row):
    return row.n, row.n_passed


class TestComparisons:
    """Row-wise comparisons; a missing value fails unless na_pass."""

    def test_gt(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_gt("a", 2))) == (5, 2)

    def test_gt_na_pass(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_gt("a", 2, na_pass=True))) == (5, 3)

    def test_gte(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_gte("a", 2))) == (5, 3)

    def test_lt(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_lt("b", 5))) == (5, 4)

    def test_lte_with_nan(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_lte("x", 2.0))) == (5, 3)

    def test_equal(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_equal("b", 2))) == (5, 3)

    def test_not_equal_string(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_equal("s", "apple"))) == (5, 2)

    def test_cross_column(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_gt("a", pb.col("b")))
        assert units(row) == (5, 1)

    def test_value_expression(self, small_df):
        row = run_one(small_df, lambda a: a.col_vals_lte("b", pb.expr(lambda t: t["b"].median())))
        assert units(row) == (5, 4)

    def test_missing_column_errors(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_gt("zz", 1))
        assert row.status == StepStatus.ERRORED
        assert row.error.kind == "resolution"
        assert row.n is None and row.all_passed is False

    def test_missing_cross_column_errors(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_gt("a", pb.col("zz")))
        assert row.error.kind == "resolution"


class TestBetween:
    """Bound inclusivity is set per bound."""

    def test_inclusive(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_between("a", 1, 3))) == (5, 3)

    def test_right_exclusive(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_between("a", 1, 3, inclusive=(True, False)))
        assert units(row) == (5, 2)

    def test_not_between(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_between("a", 2, 3))) == (5, 2)

    @pytest.mark.parametrize("value,passes", [(5.0, False), (1.0, True), (0.999, False)])
    def test_bounds(self, value, passes):
        df = pl.DataFrame({"v": [value]})
        row = run_one(df, lambda a: a.col_vals_between("v", 1, 5, inclusive=(True, False)))
        assert row.all_passed is passes

    def test_column_bounds(self):
        df = pl.DataFrame({"v": [2, 9], "lo": [1, 1], "hi": [3, 3]})
        row = run_one(df, lambda a: a.col_vals_between("v", pb.col("lo"), pb.col("hi")))
        assert units(row) == (2, 1)


class TestMembership:
    """in_set / not_in_set; a missing value is a member only if None is listed."""

    def test_in_set(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_in_set("s", ["apple", "banana"]))) == (5, 3)

    def test_in_set_with_none(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_in_set("s", ["apple", "banana", None]))
        assert units(row) == (5, 4)

    def test_not_in_set(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_in_set("s", ["apple"]))) == (5, 3)

    def test_not_in_set_with_none(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_in_set("s", ["apple", None]))) == (5, 2)


class TestMakeSet:
    """One unit per required element, plus one 'no foreign values' unit for make_set."""

    def test_exact_set(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_make_set("g", ["g1", "g2", "g3"]))
        assert units(row) == (4, 4)
        assert row.all_passed is True

    def test_foreign_value_fails_only_extra_unit(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_make_set("g", ["g1", "g2"]))
        assert units(row) == (3, 2)

    def test_missing_element(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_make_set("g", ["g1", "g2", "g3", "g4"]))
        assert units(row) == (5, 4)

    def test_foreign_rows_extracted(self, small_df):
        agent = pb.create_agent(small_df).col_vals_make_set("g", ["g1", "g2"]).interrogate()
        assert agent.get_data_extracts(1)["g"].to_list() == ["g3"]

    def test_make_subset(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_vals_make_subset("g", ["g1", "g4"]))
        assert units(row) == (2, 1)


class TestPatternAndNulls:
    """regex, null, not_null."""

    def test_regex(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_regex("s", "^b"))) == (5, 1)

    def test_regex_na_pass(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_regex("s", "^b", na_pass=True))) == (5, 2)

    def test_null(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_null("s"))) == (5, 1)

    def test_not_null(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_null("s"))) == (5, 4)

    def test_nan_counts_as_null(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_not_null("x"))) == (5, 4)


class TestColumnChecks:
    """Existence and type checks are single test units."""

    def test_exists(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_exists("a"))) == (1, 1)

    def test_does_not_exist(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.col_exists("zz"))
        assert units(row) == (1, 0)
        assert row.status == StepStatus.FAILED

    @pytest.mark.parametrize(
        "method,column,ok",
        [
            ("col_is_integer", "a", True),
            ("col_is_numeric", "a", True),
            ("col_is_numeric", "x", True),
            ("col_is_integer", "x", False),
            ("col_is_character", "s", True),
            ("col_is_character", "a", False),
            ("col_is_logical", "a", False),
        ],
    )
    def test_types(self, small_tbl, method, column, ok):
        row = run_one(small_tbl, lambda a: getattr(a, method)(column))
        assert row.all_passed is ok

    def test_date_types(self):
        df = pl.DataFrame({
            "d": [dt.date(2024, 1, 1)],
            "ts": [dt.datetime(2024, 1, 1, 12)],
            "f": ["x"],
            "ok": [True],
        }).with_columns(pl.col("f").cast(pl.Categorical))
        agent = (
            pb.create_agent(df)
            .col_is_date("d")
            .col_is_posix("ts")
            .col_is_factor("f")
            .col_is_logical("ok")
            .col_is_date("ts")
            .interrogate()
        )
        assert [r.all_passed for r in agent.validation_set] == [True, True, True, True, False]


class TestTableChecks:
    """rows_distinct, rows_complete and col_schema_match."""

    def test_distinct(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.rows_distinct())) == (1, 1)

    def test_distinct_on_subset(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.rows_distinct("g"))
        assert units(row) == (1, 0)
        assert row.extract.collect().height == 4

    def test_complete(self, small_tbl):
        row = run_one(small_tbl, lambda a: a.rows_complete())
        assert units(row) == (1, 0)
        assert row.extract.collect().height == 3

    def test_complete_on_subset(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.rows_complete(["b", "g"]))) == (1, 1)

    def test_schema_by_category(self, small_tbl):
        schema = pb.col_schema(a="integer", b="integer", x="numeric", s="character", g="character")
        assert run_one(small_tbl, lambda a: a.col_schema_match(schema)).all_passed is True

    def test_schema_presence_only(self, small_tbl):
        schema = pb.col_schema(a=None, b=None, x=None, s=None, g=None)
        assert run_one(small_tbl, lambda a: a.col_schema_match(schema)).all_passed is True

    def test_schema_incomplete(self, small_tbl):
        schema = pb.col_schema(a="integer", s="character")
        assert run_one(small_tbl, lambda a: a.col_schema_match(schema)).all_passed is False
        row = run_one(small_tbl, lambda a: a.col_schema_match(schema, complete=False))
        assert row.all_passed is True

    def test_schema_order(self, small_tbl):
        schema = pb.col_schema(b=None, a=None, x=None, s=None, g=None)
        assert run_one(small_tbl, lambda a: a.col_schema_match(schema)).all_passed is False
        row = run_one(small_tbl, lambda a: a.col_schema_match(schema, in_order=False))
        assert row.all_passed is True

    def test_schema_wrong_type(self, small_tbl):
        schema = pb.col_schema(a="character", b=None, x=None, s=None, g=None)
        assert run_one(small_tbl, lambda a: a.col_schema_match(schema)).all_passed is False

    def test_schema_from_native_names(self, small_df):
        schema = pb.ColSchema.from_table(small_df)
        assert run_one(small_df, lambda a: a.col_schema_match(schema)).all_passed is True


class TestUserDefined:
    """col_vals_expr, conjointly, specially."""

    def test_sql_expression(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_expr("a > 1"))) == (5, 3)

    def test_polars_expression(self, small_df):
        assert units(run_one(small_df, lambda a: a.col_vals_expr(pl.col("b") == 2))) == (5, 3)

    def test_polars_expression_on_duckdb_errors(self, small_rel):
        row = run_one(small_rel, lambda a: a.col_vals_expr(pl.col("b") == 2))
        assert row.error.kind == "execution"

    def test_constant_expression_counts_every_row(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.col_vals_expr("1 = 1"))) == (5, 5)

    def test_non_boolean_expression_is_contained(self, small_df):
        agent = pb.create_agent(small_df).col_vals_expr(pl.col("b")).col_vals_gt("b", 0).interrogate()
        first, second = agent.validation_set
        assert first.status == StepStatus.ERRORED
        assert first.error.kind == "execution"
        assert second.status == StepStatus.PASSED

    def test_callable_mask(self, small_df):
        row = run_one(small_df, lambda a: a.col_vals_expr(lambda df: df["b"] < 5))
        assert units(row) == (5, 4)
        assert row.extract.collect()["b"].to_list() == [5]

    def test_callable_wrong_length(self, small_df):
        row = run_one(small_df, lambda a: a.col_vals_expr(lambda df: [True, False]))
        assert row.error.kind == "execution"

    def test_conjointly(self, small_tbl):
        row = run_one(
            small_tbl,
            lambda a: a.conjointly(
                lambda s: s.col_vals_gt("a", 1),
                lambda s: s.col_vals_lt("b", 5),
            ),
        )
        assert units(row) == (5, 2)

    def test_conjointly_na_pass_per_step(self, small_tbl):
        row = run_one(
            small_tbl,
            lambda a: a.conjointly(
                lambda s: s.col_vals_gt("a", 1, na_pass=True),
                lambda s: s.col_vals_lt("b", 5),
            ),
        )
        assert units(row) == (5, 3)

    def test_specially_scalar(self, small_tbl):
        assert units(run_one(small_tbl, lambda a: a.specially(lambda t: True))) == (1, 1)
        assert units(run_one(small_tbl, lambda a: a.specially(lambda t: False))) == (1, 0)

    def test_specially_vector(self, small_df):
        row = run_one(small_df, lambda a: a.specially(lambda df: df["b"] > 1))
        assert units(row) == (5, 4)

    def test_specially_error_captured(self, small_tbl):
        def boom(t):
            raise ZeroDivisionError("x")

        row = run_one(small_tbl, lambda a: a.specially(boom))
        assert row.error.kind == "execution"
        assert row.error.exception_type == "ExecutionError"
        assert "ZeroDivisionError" in row.error.message


class TestEmptyTable:
    """n = 0 is a vacuous pass for every row-wise check."""

    @pytest.mark.parametrize(
        "build",
        [
            lambda a: a.col_vals_gt("a", 1),
            lambda a: a.col_vals_in_set("a", [1]),
            lambda a: a.col_vals_regex("s", "x"),
            lambda a: a.col_vals_not_null("a"),
            lambda a: a.col_vals_between("a", 0, 1),
            lambda a: a.col_vals_expr(pl.lit(True)),
        ],
    )
    def test_vacuous_pass(self, build):
        df = pl.DataFrame({"a": [], "s": []}, schema={"a": pl.Int64, "s": pl.String})
        row = run_one(df, build)
        assert row.n == 0
        assert row.all_passed is True
        assert (row.f_passed, row.f_failed) == (1.0, 0.0)
