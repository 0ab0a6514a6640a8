"""Tests for test-unit aggregation."""

import polars as pl
import pytest

from plumbline.engine.aggregate import FailedRows, aggregate, aggregate_counts


class TestAggregateCounts:
    """Counts and fractions."""

    def test_basic(self):
        t = aggregate_counts(10, 7)
        assert (t.n, t.n_passed, t.n_failed) == (10, 7, 3)
        assert t.f_passed == pytest.approx(0.7)
        assert t.f_failed == pytest.approx(0.3)
        assert t.all_passed is False

    def test_empty_is_vacuous_pass(self):
        t = aggregate_counts(0, 0)
        assert t.all_passed is True
        assert (t.f_passed, t.f_failed) == (1.0, 0.0)

    def test_inconsistent_counts(self):
        with pytest.raises(ValueError):
            aggregate_counts(3, 4)

    def test_units_always_add_up(self):
        for n in range(0, 6):
            for p in range(0, n + 1):
                t = aggregate_counts(n, p)
                assert t.n_passed + t.n_failed == t.n



class TestAggregateVector:
    """Pass/fail vectors with missing entries."""

    def test_missing_fails_by_default(self):
        assert aggregate([True, None, False]).n_passed == 1

    def test_missing_passes_with_na_pass(self):
        assert aggregate([True, None, False], na_pass=True).n_passed == 2


class TestFailedRows:
    """Lazy, cached failing-row extracts."""

    def test_collect_is_cached(self):
        calls = []

        def thunk(limit):
            calls.append(limit)
            return pl.DataFrame({"a": [1, 2, 3]}).head(limit)

        fr = FailedRows(thunk, limit=2)
        assert "pending" in repr(fr)
        assert fr.collect().height == 2
        assert fr.collect().height == 2
        assert calls == [2]
        assert "collected" in repr(fr)
