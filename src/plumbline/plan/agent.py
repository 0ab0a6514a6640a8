# src/plumbline/plan/agent.py
"""
The validation plan (Agent).

    agent = (
        create_agent(df, tbl_name="orders", actions=action_levels(warn_at=0.1))
        .col_vals_not_null("id")
        .col_vals_between("amount", 0, 10_000, inclusive=(True, False))
        .col_vals_in_set("status", ["open", "closed"], segments="region")
        .interrogate()
    )
    agent.all_passed()

Every builder method accepts these keyword options:

    preconditions  table -> table function applied before the check
    segments       "col" (every value), ("col", [v1, v2]), {"col": [v1]} or a list
    actions        ActionLevels for this step (overrides the agent default)
    step_id        str (suffixed .0001, ... on fan-out) or one id per expanded step
    label, brief   free text; `brief` is generated when omitted
    active         bool, has_columns(...), or a table -> bool function (sees the
                   table after preconditions)
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import polars as pl

from plumbline.config.models import ActionLevels
from plumbline.config.settings import PlumblineSettings, resolve_settings
from plumbline.engine.backends.registry import supports, wrap_table
from plumbline.engine.interrogation import Interrogation, acquire_table
from plumbline.errors import ConfigurationError, PlumblineError
from plumbline.logging import configure_logging, get_logger
from plumbline.plan.briefs import autobrief
from plumbline.plan.refs import (
    ALL_VALUES,
    ColumnRef,
    Expression,
    Selector,
    as_param,
    describe,
)
from plumbline.plan.schema import ColSchema
from plumbline.plan.types import (
    ROW_WISE,
    AgentState,
    AssertionType as A,
    StepStatus,
    ValidationStep,
)

_logger = get_logger(__name__)

_STEP_OPTIONS = frozenset({
    "preconditions", "segments", "actions", "step_id", "label", "brief", "active",
})

Segments = Union[str, Tuple[str, Any], Dict[str, Any], List[Any], None]


# --------------------------------------------------------------------------- #
# Argument checks (build time)
# --------------------------------------------------------------------------- #

def _expand_columns(columns: Any, fan_out: bool = True) -> List[Any]:
    """
    Literal names fan out now; selectors (and lists holding one) stay deferred.
    """
    if columns is None:
        raise ConfigurationError("A column reference is required")
    if isinstance(columns, ColumnRef):
        return [columns.name]
    if isinstance(columns, (str, Selector)):
        if isinstance(columns, str) and not columns:
            raise ConfigurationError("Column names must be non-empty")
        return [columns]
    if isinstance(columns, (list, tuple)):
        if not columns:
            raise ConfigurationError("An empty column list was given")
        items = [c.name if isinstance(c, ColumnRef) else c for c in columns]
        for c in items:
            if not isinstance(c, (str, Selector)) or c == "":
                raise ConfigurationError(f"Invalid column reference {c!r}")
        if not fan_out or any(isinstance(c, Selector) for c in items):
            return [list(items)]
        return list(dict.fromkeys(items))
    raise ConfigurationError(f"Invalid column reference of type {type(columns).__name__}")


def _parse_segments(segments: Segments) -> List[Tuple[Optional[str], Any]]:
    """Normalize a segment declaration into (column, value) pairs."""
    if segments is None:
        return [(None, None)]
    if isinstance(segments, str):
        return [(segments, ALL_VALUES)]
    if isinstance(segments, tuple) and len(segments) == 2 and isinstance(segments[0], str):
        col_name, values = segments
        if values is None:
            return [(col_name, ALL_VALUES)]
        if isinstance(values, (list, tuple, set, frozenset)):
            if not values:
                raise ConfigurationError(f"Segment values for '{col_name}' are empty")
            return [(col_name, v) for v in values]
        return [(col_name, values)]
    if isinstance(segments, dict):
        out: List[Tuple[Optional[str], Any]] = []
        for col_name, values in segments.items():
            out.extend(_parse_segments((col_name, values)))
        return out
    if isinstance(segments, list):
        out = []
        for item in segments:
            if item is None or isinstance(item, list):
                raise ConfigurationError(f"Invalid segment specification {item!r}")
            out.extend(_parse_segments(item))
        return out
    raise ConfigurationError(f"Invalid segment specification {segments!r}")


def _check_value(value: Any, name: str = "value") -> Any:
    if isinstance(value, Selector):
        raise ConfigurationError(f"`{name}` cannot be a column selector; use col() for one column")
    if callable(value) and not isinstance(value, Expression):
        raise ConfigurationError(f"`{name}` must be a value, col() or expr(), got a function")
    return as_param(value)


def _check_set(values: Any, allow_empty: bool = True) -> Tuple[Any, ...]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise ConfigurationError(f"`set` must be a list of values, got {type(values).__name__}")
    out = tuple(dict.fromkeys(values))
    if not out and not allow_empty:
        raise ConfigurationError("`set` must contain at least one value")
    return out


def _check_flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"`{name}` must be True or False, got {value!r}")
    return value


def _check_inclusive(inclusive: Any) -> Tuple[bool, bool]:
    if (
        not isinstance(inclusive, (list, tuple))
        or len(inclusive) != 2
        or not all(isinstance(b, bool) for b in inclusive)
    ):
        raise ConfigurationError("`inclusive` must be a pair of booleans, e.g. (True, False)")
    return (inclusive[0], inclusive[1])


_SUFFIXED = re.compile(r"^(.+)\.\d{4}$")


def _suffix_clash(step_id: str, taken: set) -> Optional[str]:
    """
    An existing id that collides with `step_id` once a step fans out into
    `<id>.0001`, `<id>.0002`, ... rows at interrogation.
    """
    m = _SUFFIXED.match(step_id)
    if m and m.group(1) in taken:
        return m.group(1)
    for t in taken:
        m = _SUFFIXED.match(t)
        if m and m.group(1) == step_id:
            return t
    return None


# --------------------------------------------------------------------------- #
# Agent
# --------------------------------------------------------------------------- #

class Agent:
    """An ordered plan of validation steps plus the results of its last run."""

    def __init__(
        self,
        tbl: Any = None,
        tbl_name: Optional[str] = None,
        label: Optional[str] = None,
        actions: Optional[ActionLevels] = None,
        settings: Optional[PlumblineSettings] = None,
    ):
        self.tbl = tbl
        self.tbl_name = tbl_name
        self.label = label
        self.actions = actions
        self.settings = settings if settings is not None else resolve_settings()
        if self.settings.log_level:
            configure_logging(self.settings.log_level)

        self._steps: List[ValidationStep] = []
        self._rows: List[ValidationStep] = []
        self._next_i = 1
        self._next_group = 1
        self.state = AgentState.PLANNED
        self.time_start: Optional[datetime] = None
        self.time_end: Optional[datetime] = None

    def __repr__(self) -> str:
        name = f" '{self.tbl_name}'" if self.tbl_name else ""
        if self.state == AgentState.PLANNED:
            return f"Agent{name}({len(self._steps)} steps, planned)"
        failed = sum(1 for r in self._rows if r.status == StepStatus.FAILED)
        errored = sum(1 for r in self._rows if r.status == StepStatus.ERRORED)
        return f"Agent{name}({len(self._rows)} rows, {failed} failed, {errored} errored)"

    def __len__(self) -> int:
        return len(self._steps)

    # ------------------------------------------------------------------ #
    # Step assembly
    # ------------------------------------------------------------------ #

    def _add_step(
        self,
        assertion_type: A,
        columns: Any = None,
        params: Optional[Dict[str, Any]] = None,
        na_pass: Optional[bool] = None,
        fan_out: bool = True,
        **opts: Any,
    ) -> "Agent":
        unknown = set(opts) - _STEP_OPTIONS
        if unknown:
            raise TypeError(f"{assertion_type}() got unexpected keyword argument(s): {', '.join(sorted(unknown))}")

        preconditions = opts.get("preconditions")
        if preconditions is not None and not callable(preconditions):
            raise ConfigurationError("`preconditions` must be a function taking and returning a table")
        known = self._known_columns() if preconditions is not None else None

        active = opts.get("active", True)
        if not isinstance(active, bool) and not callable(active) and not isinstance(active, Expression):
            raise ConfigurationError("`active` must be a bool, has_columns(...) or a function of the table")

        actions = opts.get("actions")
        if actions is not None and not isinstance(actions, ActionLevels):
            raise ConfigurationError("`actions` must be built with action_levels()")

        label = opts.get("label")
        brief = opts.get("brief")
        for name, val in (("label", label), ("brief", brief)):
            if val is not None and not isinstance(val, str):
                raise ConfigurationError(f"`{name}` must be a string")

        params = params or {}
        cols = [None] if columns is None else _expand_columns(columns, fan_out)
        segs = _parse_segments(opts.get("segments"))
        combos = [(c, s) for c in cols for s in segs]
        ids = self._step_ids(opts.get("step_id"), len(combos))

        group = self._next_group
        new_steps = []
        for k, (column, (seg_col, seg_val)) in enumerate(combos):
            i = self._next_i + k
            new_steps.append(
                ValidationStep(
                    i=i,
                    step_id=ids[k] if ids is not None else f"{i:04d}",
                    assertion_type=assertion_type,
                    i_o=group,
                    columns_expr=describe(columns) if columns is not None else "",
                    column=column,
                    params=params,
                    na_pass=na_pass,
                    preconditions=preconditions,
                    seg_expr=opts.get("segments"),
                    seg_col=seg_col,
                    seg_val=seg_val,
                    actions=actions,
                    label=label,
                    brief=brief if brief is not None else autobrief(assertion_type, column, params, preconditions, known),
                    active=active,
                )
            )

        taken = {s.step_id for s in self._steps}
        for s in new_steps:
            if s.step_id in taken:
                raise ConfigurationError(f"Duplicate step_id '{s.step_id}'")
            clash = _suffix_clash(s.step_id, taken)
            if clash is not None:
                raise ConfigurationError(
                    f"step_id '{s.step_id}' clashes with '{clash}' once fanned-out steps take '<id>.NNNN' ids"
                )
            taken.add(s.step_id)

        self._steps.extend(new_steps)
        self._next_i += len(new_steps)
        self._next_group += 1
        return self

    def _known_columns(self) -> Optional[List[str]]:
        """Columns of a bound table; None when the table is read at interrogation."""
        if self.tbl is None or callable(self.tbl):
            return None
        return wrap_table(self.tbl).columns()

    @staticmethod
    def _step_ids(step_id: Any, n: int) -> Optional[List[str]]:
        if step_id is None:
            return None
        if isinstance(step_id, str):
            if not step_id:
                raise ConfigurationError("`step_id` must be non-empty")
            return [step_id] if n == 1 else [f"{step_id}.{k:04d}" for k in range(1, n + 1)]
        if isinstance(step_id, (list, tuple)):
            if len(step_id) != n or not all(isinstance(s, str) and s for s in step_id):
                raise ConfigurationError(f"`step_id` needs {n} non-empty string(s) for this step")
            return list(step_id)
        raise ConfigurationError("`step_id` must be a string or a list of strings")

    # ---- comparisons ---------------------------------------------------- #

    def _compare(self, t: A, columns: Any, value: Any, na_pass: bool, opts: Dict[str, Any]) -> "Agent":
        params = {"value": _check_value(value)}
        return self._add_step(t, columns, params, _check_flag(na_pass, "na_pass"), **opts)

    def col_vals_gt(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.GT, columns, value, na_pass, opts)

    def col_vals_gte(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.GTE, columns, value, na_pass, opts)

    def col_vals_lt(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.LT, columns, value, na_pass, opts)

    def col_vals_lte(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.LTE, columns, value, na_pass, opts)

    def col_vals_equal(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.EQUAL, columns, value, na_pass, opts)

    def col_vals_not_equal(self, columns: Any, value: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        return self._compare(A.NOT_EQUAL, columns, value, na_pass, opts)

    def _range(
        self, t: A, columns: Any, left: Any, right: Any, inclusive: Any, na_pass: bool, opts: Dict[str, Any]
    ) -> "Agent":
        params = {
            "left": _check_value(left, "left"),
            "right": _check_value(right, "right"),
            "inclusive": _check_inclusive(inclusive),
        }
        return self._add_step(t, columns, params, _check_flag(na_pass, "na_pass"), **opts)

    def col_vals_between(
        self,
        columns: Any,
        left: Any,
        right: Any,
        inclusive: Tuple[bool, bool] = (True, True),
        na_pass: bool = False,
        **opts: Any,
    ) -> "Agent":
        return self._range(A.BETWEEN, columns, left, right, inclusive, na_pass, opts)

    def col_vals_not_between(
        self,
        columns: Any,
        left: Any,
        right: Any,
        inclusive: Tuple[bool, bool] = (True, True),
        na_pass: bool = False,
        **opts: Any,
    ) -> "Agent":
        return self._range(A.NOT_BETWEEN, columns, left, right, inclusive, na_pass, opts)

    # ---- membership ----------------------------------------------------- #

    def col_vals_in_set(self, columns: Any, set: Sequence[Any], **opts: Any) -> "Agent":
        return self._add_step(A.IN_SET, columns, {"set": _check_set(set)}, **opts)

    def col_vals_not_in_set(self, columns: Any, set: Sequence[Any], **opts: Any) -> "Agent":
        return self._add_step(A.NOT_IN_SET, columns, {"set": _check_set(set)}, **opts)

    def col_vals_make_set(self, columns: Any, set: Sequence[Any], **opts: Any) -> "Agent":
        return self._add_step(A.MAKE_SET, columns, {"set": _check_set(set, allow_empty=False)}, **opts)

    def col_vals_make_subset(self, columns: Any, set: Sequence[Any], **opts: Any) -> "Agent":
        return self._add_step(A.MAKE_SUBSET, columns, {"set": _check_set(set, allow_empty=False)}, **opts)

    # ---- pattern / nullness --------------------------------------------- #

    def col_vals_regex(self, columns: Any, regex: str, na_pass: bool = False, **opts: Any) -> "Agent":
        if not isinstance(regex, str) or not regex:
            raise ConfigurationError("`regex` must be a non-empty string")
        return self._add_step(A.REGEX, columns, {"regex": regex}, _check_flag(na_pass, "na_pass"), **opts)

    def col_vals_null(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.NULL, columns, **opts)

    def col_vals_not_null(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.NOT_NULL, columns, **opts)

    # ---- columns -------------------------------------------------------- #

    def col_exists(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_EXISTS, columns, **opts)

    def col_is_character(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_CHARACTER, columns, **opts)

    def col_is_numeric(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_NUMERIC, columns, **opts)

    def col_is_integer(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_INTEGER, columns, **opts)

    def col_is_logical(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_LOGICAL, columns, **opts)

    def col_is_date(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_DATE, columns, **opts)

    def col_is_posix(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_POSIX, columns, **opts)

    def col_is_factor(self, columns: Any, **opts: Any) -> "Agent":
        return self._add_step(A.COL_IS_FACTOR, columns, **opts)

    # ---- table level ---------------------------------------------------- #

    def rows_distinct(self, columns: Any = None, **opts: Any) -> "Agent":
        """One test unit: no two rows share the composite value over `columns` (default: all)."""
        return self._add_step(A.ROWS_DISTINCT, columns, fan_out=False, **opts)

    def rows_complete(self, columns: Any = None, **opts: Any) -> "Agent":
        """One test unit: no row has a missing value in `columns` (default: all)."""
        return self._add_step(A.ROWS_COMPLETE, columns, fan_out=False, **opts)

    def col_schema_match(
        self,
        schema: Any,
        complete: bool = True,
        in_order: bool = True,
        **opts: Any,
    ) -> "Agent":
        try:
            declared = ColSchema.coerce(schema)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid schema: {e}") from e
        params = {
            "schema": declared,
            "complete": _check_flag(complete, "complete"),
            "in_order": _check_flag(in_order, "in_order"),
        }
        return self._add_step(A.COL_SCHEMA_MATCH, None, params, **opts)

    # ---- user defined --------------------------------------------------- #

    def col_vals_expr(self, expr: Any, na_pass: bool = False, **opts: Any) -> "Agent":
        """
        Row-wise check from an arbitrary expression.

        `expr` is a SQL boolean expression string (any backend), a polars
        expression (polars tables only), or a function of the table returning
        a boolean vector with one entry per row.
        """
        if not isinstance(expr, (str, pl.Expr)) and not callable(expr):
            raise ConfigurationError("`expr` must be a SQL string, a polars expression or a function")
        return self._add_step(A.COL_VALS_EXPR, None, {"expr": expr}, _check_flag(na_pass, "na_pass"), **opts)

    def conjointly(self, *fns: Callable[["Agent"], Any], **opts: Any) -> "Agent":
        """
        AND several row-wise checks per row.

            agent.conjointly(
                lambda a: a.col_vals_gt("a", 0),
                lambda a: a.col_vals_lt("b", col("c")),
            )
        """
        if not fns:
            raise ConfigurationError("conjointly() needs at least one step function")
        sub = Agent()
        for fn in fns:
            if not callable(fn):
                raise ConfigurationError("conjointly() arguments must be functions of an agent")
            fn(sub)
        if not sub._steps:
            raise ConfigurationError("conjointly() step functions added no steps")
        for s in sub._steps:
            if s.assertion_type not in ROW_WISE:
                raise ConfigurationError(f"'{s.assertion_type}' cannot be used inside conjointly()")
            if s.preconditions is not None or s.seg_col is not None:
                raise ConfigurationError("Steps inside conjointly() cannot have preconditions or segments")
        return self._add_step(A.CONJOINTLY, None, {"steps": list(sub._steps)}, **opts)

    def specially(self, fn: Callable[[Any], Any], **opts: Any) -> "Agent":
        """Custom check: `fn(table)` returns a bool or a vector of bools."""
        if not callable(fn):
            raise ConfigurationError("specially() expects a function of the table")
        return self._add_step(A.SPECIALLY, None, {"fn": fn}, **opts)

    # ------------------------------------------------------------------ #
    # Step management (never renumbers `i`)
    # ------------------------------------------------------------------ #

    def _lookup(self, i: Union[int, Iterable[int]]) -> List[ValidationStep]:
        wanted = [i] if isinstance(i, int) else list(i)
        by_i = {s.i: s for s in self._steps}
        missing = [k for k in wanted if k not in by_i]
        if missing:
            raise ConfigurationError(f"No step with i = {', '.join(map(str, missing))}")
        return [by_i[k] for k in wanted]

    def remove_steps(self, i: Union[int, Iterable[int]]) -> "Agent":
        drop = {s.i for s in self._lookup(i)}
        self._steps = [s for s in self._steps if s.i not in drop]
        return self

    def activate_steps(self, i: Union[int, Iterable[int]]) -> "Agent":
        for s in self._lookup(i):
            s.active = True
        return self

    def deactivate_steps(self, i: Union[int, Iterable[int]]) -> "Agent":
        for s in self._lookup(i):
            s.active = False
        return self

    # ------------------------------------------------------------------ #
    # Interrogation
    # ------------------------------------------------------------------ #

    def interrogate(
        self,
        extract_failed: Optional[bool] = None,
        extract_limit: Optional[int] = None,
    ) -> "Agent":
        """
        Execute every step against the table; results replace any earlier run.

        Raises:
            DispatchError: an action callback raised
        """
        settings = resolve_settings(self.settings, extract_limit=extract_limit, extract_failed=extract_failed)
        run = Interrogation(
            steps=list(self._steps),
            source=self.tbl,
            settings=settings,
            actions=self.actions,
            tbl_name=self.tbl_name,
            label=self.label,
        )
        try:
            run.run()
        finally:
            self._rows = run.rows
            self.time_start = run.time_start
            self.time_end = run.time_end
            self.state = AgentState.INTERROGATED
        return self

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    @property
    def steps(self) -> List[ValidationStep]:
        """Planned steps, in `i` order."""
        return list(self._steps)

    @property
    def validation_set(self) -> List[ValidationStep]:
        """Materialized rows of the last interrogation."""
        return list(self._rows)

    @property
    def interrogated(self) -> bool:
        return self.state == AgentState.INTERROGATED

    def _require_results(self) -> None:
        if not self.interrogated:
            raise PlumblineError("The agent has not been interrogated yet; call interrogate() first")

    def all_passed(self, i: Optional[Union[int, Iterable[int]]] = None) -> bool:
        """True when every active row (optionally only those with the given `i`) passed."""
        self._require_results()
        rows = self._rows
        if i is not None:
            wanted = {i} if isinstance(i, int) else set(i)
            rows = [r for r in rows if r.i in wanted]
        return all(r.all_passed for r in rows if r.status != StepStatus.INACTIVE)

    def steps_where(
        self,
        warn: Optional[bool] = None,
        stop: Optional[bool] = None,
        notify: Optional[bool] = None,
        errored: Optional[bool] = None,
        status: Optional[Union[str, StepStatus]] = None,
    ) -> List[ValidationStep]:
        """Rows matching every given condition."""
        self._require_results()
        out = []
        for r in self._rows:
            if warn is not None and bool(r.warn) != warn:
                continue
            if stop is not None and bool(r.stop) != stop:
                continue
            if notify is not None and bool(r.notify) != notify:
                continue
            if errored is not None and r.errored != errored:
                continue
            if status is not None and r.status != StepStatus(status):
                continue
            out.append(r)
        return out

    def get_data_extracts(self, i: Optional[int] = None) -> Union[Optional[pl.DataFrame], Dict[str, pl.DataFrame]]:
        """
        Failing rows kept during interrogation.

        With `i`: one frame (sub-rows of a fanned-out step are concatenated),
        or None when the step kept no rows. Without: {step_id: frame}.
        """
        self._require_results()
        if i is None:
            return {r.step_id: r.extract.collect() for r in self._rows if r.extract is not None}
        rows = [r for r in self._rows if r.i == i]
        if not rows:
            raise ConfigurationError(f"No step with i = {i}")
        frames = [r.extract.collect() for r in rows if r.extract is not None]
        if not frames:
            return None
        return frames[0] if len(frames) == 1 else pl.concat(frames, how="vertical_relaxed")

    def get_sundered_data(self, type: str = "pass") -> pl.DataFrame:
        """
        Split the table by the row-wise steps that ran without preconditions
        or segments: "pass" keeps rows passing all of them, "fail" the rest.
        """
        from plumbline.engine.sunder import sunder

        self._require_results()
        if type not in ("pass", "fail"):
            raise ConfigurationError("`type` must be 'pass' or 'fail'")
        passing, failing = sunder(acquire_table(self.tbl), self._rows)
        return passing if type == "pass" else failing

    def x_list(self) -> Dict[str, Any]:
        """Column-wise view of the validation set plus run metadata."""
        self._require_results()
        records = [r.to_dict() for r in self._rows]
        keys = records[0].keys() if records else ValidationStep(0, "", A.GT).to_dict().keys()
        out: Dict[str, Any] = {k: [rec[k] for rec in records] for k in keys}
        out.update(
            tbl_name=self.tbl_name,
            label=self.label,
            time_start=self.time_start,
            time_end=self.time_end,
        )
        return out

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Serializable records: materialized rows once interrogated, planned steps before."""
        source = self._rows if self.interrogated else self._steps
        return [r.to_dict() for r in source]

    def to_polars(self) -> pl.DataFrame:
        records = self.to_dicts()
        flat = []
        for rec in records:
            row = dict(rec)
            for k in ("values", "seg_val", "actions", "active"):
                if row[k] is not None:
                    row[k] = str(row[k])
            for k in ("error", "warning"):
                row[k] = row[k]["message"] if row[k] else None
            flat.append(row)
        return pl.DataFrame(flat, infer_schema_length=None)


def create_agent(
    tbl: Any = None,
    *,
    tbl_name: Optional[str] = None,
    label: Optional[str] = None,
    actions: Optional[ActionLevels] = None,
    extract_limit: Optional[int] = None,
    settings: Optional[PlumblineSettings] = None,
) -> Agent:
    """
    Start a validation plan.

    `tbl` is a polars DataFrame/LazyFrame, a duckdb relation, a pandas
    DataFrame, a pyarrow Table, or a zero-argument function returning one
    (called at every interrogation).
    """
    if tbl is not None and not callable(tbl) and not supports(tbl):
        raise ConfigurationError(f"Unsupported table type {type(tbl).__name__}")
    if actions is not None and not isinstance(actions, ActionLevels):
        raise ConfigurationError("`actions` must be built with action_levels()")
    try:
        resolved = resolve_settings(settings, extract_limit=extract_limit)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    return Agent(tbl, tbl_name=tbl_name, label=label, actions=actions, settings=resolved)
