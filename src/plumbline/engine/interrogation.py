# src/plumbline/engine/interrogation.py
from __future__ import annotations

"""
Interrogation: runs a plan of validation steps against one table.

Flow (per planned step, ascending `i`)
--------------------------------------
  1) Apply the step's preconditions to a fresh view of the base table
  2) Evaluate `active` against that view
  3) Resolve target columns (selectors fan out here)
  4) Split into segments (by-column segments fan out here)
  5) Execute each column x segment, aggregate, classify, dispatch

Principles
----------
- Containment: table-dependent failures are recorded on the one step
- Full re-execution: every run rebuilds the validation set from scratch
- Only action callbacks may abort a run (DispatchError)
"""

import time
import warnings
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from plumbline.config.models import ActionLevels
from plumbline.config.settings import PlumblineSettings
from plumbline.engine.actions import classify, dispatch
from plumbline.engine.aggregate import FailedRows, Outcome, aggregate_counts
from plumbline.engine.backends.registry import wrap_table
from plumbline.engine.executor import execute
from plumbline.engine.resolver import resolve_columns
from plumbline.engine.transform import apply_preconditions, split_segments
from plumbline.errors import ExecutionError, PlumblineError, StepError, TransformError
from plumbline.logging import get_logger, log_exception
from plumbline.plan.refs import Expression, describe
from plumbline.plan.types import (
    ActionContext,
    AssertionType,
    StepCondition,
    StepStatus,
    ValidationStep,
)

_logger = get_logger(__name__)


# --------------------------------- Helpers ---------------------------------- #

def _now() -> datetime:
    return datetime.now(timezone.utc)


def acquire_table(source: Any) -> Any:
    """Bind the agent's table: call a zero-argument reader, then wrap."""
    if source is None:
        raise TransformError("The agent has no table to interrogate")
    try:
        obj = source() if callable(source) else source
    except Exception as e:
        raise TransformError(f"Reading the target table failed: {type(e).__name__}: {e}") from e
    try:
        return wrap_table(obj)
    except TypeError as e:
        raise TransformError(str(e)) from e


def eval_active(active: Any, table: Any) -> bool:
    if isinstance(active, bool):
        return active
    fn: Callable[[Any], Any] = active.fn if isinstance(active, Expression) else active
    try:
        return bool(fn(table.native))
    except Exception as e:
        raise TransformError(f"Evaluating `active` failed: {type(e).__name__}: {e}") from e


def resolve_targets(step: ValidationStep, table: Any) -> List[Any]:
    """Concrete column targets for one step; one entry per materialized row."""
    at = step.assertion_type
    available = table.columns()
    if at in (AssertionType.ROWS_DISTINCT, AssertionType.ROWS_COMPLETE):
        if step.column is None:
            return [None]
        return [resolve_columns(step.column, available)]
    if step.column is None:
        return [None]
    if at == AssertionType.COL_EXISTS:
        # Missing columns are scored, not raised
        return resolve_columns(step.column, available, allow_missing=True) or [describe(step.column)]
    return resolve_columns(step.column, available)


def _condition_from_warnings(caught: List[warnings.WarningMessage]) -> Optional[StepCondition]:
    if not caught:
        return None
    w = caught[0]
    msg = str(w.message)
    if len(caught) > 1:
        msg += f" (+{len(caught) - 1} more warning(s))"
    return StepCondition(
        kind="warning",
        message=msg,
        exception_type=w.category.__name__,
        exception=w.message if isinstance(w.message, BaseException) else None,
    )


# ------------------------------- Interrogator -------------------------------- #

@dataclass
class Interrogation:
    """
    One run over a planned step list.

    `rows` is filled in step order as the run progresses, so a run aborted by
    an action callback still exposes the rows evaluated so far.
    """

    steps: List[ValidationStep]
    source: Any
    settings: PlumblineSettings
    actions: Optional[ActionLevels] = None
    tbl_name: Optional[str] = None
    label: Optional[str] = None

    rows: List[ValidationStep] = field(default_factory=list)
    time_start: Optional[datetime] = None
    time_end: Optional[datetime] = None

    def run(self) -> List[ValidationStep]:
        self.rows = []
        self.time_start = _now()
        _logger.info("Interrogating %d step(s)%s", len(self.steps), f" on '{self.tbl_name}'" if self.tbl_name else "")

        try:
            table = acquire_table(self.source)
        except TransformError as e:
            log_exception(_logger, "Table acquisition failed; every step is errored", e)
            for step in self.steps:
                self.rows.append(self._errored(step, e, time.perf_counter()))
            self.time_end = _now()
            return self.rows

        try:
            for step in self.steps:
                self._run_step(step, table)
        finally:
            self.time_end = _now()

        n_err = sum(1 for r in self.rows if r.status == StepStatus.ERRORED)
        n_fail = sum(1 for r in self.rows if r.status == StepStatus.FAILED)
        _logger.info(
            "Interrogation finished: %d row(s), %d failed, %d errored",
            len(self.rows), n_fail, n_err,
        )
        return self.rows

    # ------------------------------------------------------------------ #

    def _new_row(self, step: ValidationStep, **changes: Any) -> ValidationStep:
        row = replace(step, **changes)
        row.reset_results()
        return row

    def _errored(self, step: ValidationStep, exc: BaseException, t0: float, **changes: Any) -> ValidationStep:
        row = self._new_row(step, **changes)
        row.eval_active = True
        row.status = StepStatus.ERRORED
        row.all_passed = False
        row.error = StepCondition.from_exception(exc)
        row.time_processed = _now()
        row.proc_duration_s = time.perf_counter() - t0
        return row

    def _inactive(self, step: ValidationStep, t0: float) -> ValidationStep:
        row = self._new_row(step)
        row.eval_active = False
        row.status = StepStatus.INACTIVE
        row.time_processed = _now()
        row.proc_duration_s = time.perf_counter() - t0
        return row

    def _run_step(self, step: ValidationStep, base: Any) -> None:
        t0 = time.perf_counter()
        _logger.debug("Step %s: %s(%s)", step.step_id, step.assertion_type, describe(step.column))

        if step.active is False:
            self.rows.append(self._inactive(step, t0))
            return

        try:
            table = apply_preconditions(base, step.preconditions)
            if not eval_active(step.active, table):
                self.rows.append(self._inactive(step, t0))
                return
            targets = resolve_targets(step, table)
            segments = split_segments(table, step.seg_col, step.seg_val)
        except StepError as e:
            log_exception(_logger, f"Step {step.step_id} errored", e)
            self.rows.append(self._errored(step, e, t0))
            return

        combos = [(c, seg) for c in targets for seg in segments]
        fan_out = len(combos) > 1
        for k, (column, (seg_col, seg_val, subset)) in enumerate(combos, start=1):
            changes = {"column": column, "seg_col": seg_col, "seg_val": seg_val}
            if fan_out:
                changes.update(sub=k, step_id=f"{step.step_id}.{k:04d}")
            self._run_row(step, subset, changes, t0)
            t0 = time.perf_counter()

    def _run_row(self, step: ValidationStep, table: Any, changes: dict, t0: float) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                outcome: Outcome = execute(
                    step.assertion_type, table, changes["column"], step.params, step.na_pass
                )
                try:
                    tally = aggregate_counts(outcome.n, outcome.n_passed)
                except ValueError as e:
                    raise ExecutionError(str(e)) from e
            except StepError as e:
                error: Optional[PlumblineError] = e
            else:
                error = None

        if error is not None:
            log_exception(_logger, f"Step {changes.get('step_id', step.step_id)} errored", error)
            row = self._errored(step, error, t0, **changes)
            row.warning = _condition_from_warnings(caught)
            self.rows.append(row)
            return

        row = self._new_row(step, **changes)
        row.eval_active = True
        row.warning = _condition_from_warnings(caught)
        row.n = tally.n
        row.n_passed = tally.n_passed
        row.n_failed = tally.n_failed
        row.f_passed = tally.f_passed
        row.f_failed = tally.f_failed
        row.all_passed = tally.all_passed
        row.status = StepStatus.PASSED if tally.all_passed else StepStatus.FAILED
        if outcome.extract is not None and tally.n_failed > 0 and self.settings.extract_failed:
            row.extract = FailedRows(outcome.extract, self.settings.extract_limit)

        levels = step.actions if step.actions is not None else self.actions
        flags = classify(tally.n_failed, tally.f_failed, levels)
        row.notify, row.warn, row.stop = flags["notify"], flags["warn"], flags["stop"]
        row.time_processed = _now()
        row.proc_duration_s = time.perf_counter() - t0
        self.rows.append(row)

        _logger.debug(
            "Step %s: %d/%d failed (warn=%s, stop=%s, notify=%s)",
            row.step_id, tally.n_failed, tally.n, row.warn, row.stop, row.notify,
        )
        dispatch(levels, flags, self._context(row))

    def _context(self, row: ValidationStep) -> ActionContext:
        return ActionContext(
            level="",
            i=row.i,
            step_id=row.step_id,
            assertion_type=row.assertion_type.value,
            column=describe(row.column) if row.column is not None else None,
            brief=row.brief,
            n=row.n,
            n_passed=row.n_passed,
            n_failed=row.n_failed,
            f_failed=row.f_failed,
            label=row.label,
            tbl_name=self.tbl_name,
        )
