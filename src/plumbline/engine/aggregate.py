# src/plumbline/engine/aggregate.py
"""
Result Aggregator.

Converts the outcome of one executed step into test-unit counts and keeps a
lazy handle on the failing rows for later extraction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import polars as pl


@dataclass(frozen=True)
class Tally:
    n: int
    n_passed: int
    n_failed: int
    f_passed: float
    f_failed: float
    all_passed: bool


def aggregate_counts(n: int, n_passed: int) -> Tally:
    """
    Counts -> Tally. An empty step (n == 0) is a vacuous pass:
    f_passed = 1, f_failed = 0.
    """
    if n < 0 or n_passed < 0 or n_passed > n:
        raise ValueError(f"Inconsistent test-unit counts: n={n}, n_passed={n_passed}")
    n_failed = n - n_passed
    if n == 0:
        return Tally(0, 0, 0, 1.0, 0.0, True)
    return Tally(
        n=n,
        n_passed=n_passed,
        n_failed=n_failed,
        f_passed=n_passed / n,
        f_failed=n_failed / n,
        all_passed=n_failed == 0,
    )


def aggregate(units: Iterable[Optional[bool]], na_pass: Optional[bool] = False) -> Tally:
    """Aggregate a pass/fail vector; None entries are scored by `na_pass`."""
    n = 0
    n_passed = 0
    for u in units:
        n += 1
        if u is None:
            u = bool(na_pass)
        if u:
            n_passed += 1
    return aggregate_counts(n, n_passed)


@dataclass
class Outcome:
    """What a step handler hands back to the aggregator."""

    n: int
    n_passed: int
    # Called with a row cap; returns the failing rows. None when the check
    # has no row-level failures to show (type checks, schema match, ...).
    extract: Optional[Callable[[Optional[int]], pl.DataFrame]] = None


class FailedRows:
    """
    Lazily materialized failing rows of one step, capped at `limit`.

    The first `collect()` runs the query; later calls return the cached frame.
    """

    def __init__(self, thunk: Callable[[Optional[int]], pl.DataFrame], limit: Optional[int]):
        self._thunk = thunk
        self.limit = limit
        self._frame: Optional[pl.DataFrame] = None

    def __repr__(self) -> str:
        state = "collected" if self._frame is not None else "pending"
        return f"FailedRows(limit={self.limit}, {state})"

    def collect(self) -> pl.DataFrame:
        if self._frame is None:
            self._frame = self._thunk(self.limit)
        return self._frame

