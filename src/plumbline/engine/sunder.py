# src/plumbline/engine/sunder.py
"""
Sundering: split the target table into rows that pass every eligible
row-wise step and rows that fail at least one.

A step is eligible when it ran (not errored or inactive), is row-wise, and
has neither preconditions nor segments, so its rows line up with the base
table. Callable `col_vals_expr` steps are skipped (no predicate form).
"""

from __future__ import annotations

from typing import Any, List, Tuple

import polars as pl

from plumbline.engine.executor import row_predicate
from plumbline.engine.predicates import Coalesce, Node, conj
from plumbline.logging import get_logger
from plumbline.plan.types import AssertionType, StepStatus, ValidationStep

_logger = get_logger(__name__)

_NA_SETTLED = (AssertionType.IN_SET, AssertionType.NOT_IN_SET)


def eligible(row: ValidationStep) -> bool:
    if row.status not in (StepStatus.PASSED, StepStatus.FAILED):
        return False
    if not row.assertion_type.is_row_wise:
        return False
    if row.preconditions is not None or row.seg_col is not None:
        return False
    if row.assertion_type == AssertionType.COL_VALS_EXPR:
        e = row.params["expr"]
        return isinstance(e, (str, pl.Expr))
    return True


def sunder(table: Any, rows: List[ValidationStep]) -> Tuple[pl.DataFrame, pl.DataFrame]:
    """(passing rows, failing rows) of `table`."""
    parts: List[Node] = []
    for row in rows:
        if not eligible(row):
            continue
        pred = row_predicate(row.assertion_type, row.column, row.params, table)
        if row.assertion_type not in _NA_SETTLED:
            pred = Coalesce(pred, bool(row.na_pass))
        parts.append(pred)
    _logger.debug("Sundering on %d step(s)", len(parts))
    return table.split(conj(*parts))
