# src/plumbline/plan/types.py
"""
Plan data types: assertion kinds, step status, and the ValidationStep record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from plumbline.plan.refs import ALL_VALUES, ColumnRef, Expression, Literal, Selector, describe


class AssertionType(str, Enum):
    """Closed set of checks a step can perform."""

    # Comparisons
    GT = "col_vals_gt"
    GTE = "col_vals_gte"
    LT = "col_vals_lt"
    LTE = "col_vals_lte"
    EQUAL = "col_vals_equal"
    NOT_EQUAL = "col_vals_not_equal"
    BETWEEN = "col_vals_between"
    NOT_BETWEEN = "col_vals_not_between"

    # Membership
    IN_SET = "col_vals_in_set"
    NOT_IN_SET = "col_vals_not_in_set"
    MAKE_SET = "col_vals_make_set"
    MAKE_SUBSET = "col_vals_make_subset"

    # Pattern / nullness
    REGEX = "col_vals_regex"
    NULL = "col_vals_null"
    NOT_NULL = "col_vals_not_null"

    # Existence / types
    COL_EXISTS = "col_exists"
    COL_IS_CHARACTER = "col_is_character"
    COL_IS_NUMERIC = "col_is_numeric"
    COL_IS_INTEGER = "col_is_integer"
    COL_IS_LOGICAL = "col_is_logical"
    COL_IS_DATE = "col_is_date"
    COL_IS_POSIX = "col_is_posix"
    COL_IS_FACTOR = "col_is_factor"

    # Table-level
    ROWS_DISTINCT = "rows_distinct"
    ROWS_COMPLETE = "rows_complete"
    COL_SCHEMA_MATCH = "col_schema_match"

    # User-defined / composite
    COL_VALS_EXPR = "col_vals_expr"
    CONJOINTLY = "conjointly"
    SPECIALLY = "specially"

    def __str__(self) -> str:
        return self.value

    @property
    def is_row_wise(self) -> bool:
        """One test unit per row, expressible as a predicate."""
        return self in ROW_WISE


ROW_WISE = frozenset({
    AssertionType.GT, AssertionType.GTE, AssertionType.LT, AssertionType.LTE,
    AssertionType.EQUAL, AssertionType.NOT_EQUAL,
    AssertionType.BETWEEN, AssertionType.NOT_BETWEEN,
    AssertionType.IN_SET, AssertionType.NOT_IN_SET,
    AssertionType.REGEX, AssertionType.NULL, AssertionType.NOT_NULL,
    AssertionType.COL_VALS_EXPR,
})


class StepStatus(str, Enum):
    PLANNED = "planned"
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    INACTIVE = "inactive"

    def __str__(self) -> str:
        return self.value


class AgentState(str, Enum):
    PLANNED = "planned"
    INTERROGATED = "interrogated"

    def __str__(self) -> str:
        return self.value


@dataclass
class StepCondition:
    """A captured error or warning raised while a step was evaluated."""

    kind: str  # "resolution", "transform", "execution", "warning", ...
    message: str
    exception_type: str
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "exception_type": self.exception_type,
        }

    @classmethod
    def from_exception(cls, exc: BaseException, kind: Optional[str] = None) -> "StepCondition":
        return cls(
            kind=kind or getattr(exc, "kind", "execution"),
            message=str(exc),
            exception_type=type(exc).__name__,
            exception=exc,
        )


@dataclass
class ActionContext:
    """What an action callback receives."""

    level: str
    i: int
    step_id: str
    assertion_type: str
    column: Optional[str]
    brief: Optional[str]
    n: int
    n_passed: int
    n_failed: int
    f_failed: float
    label: Optional[str] = None
    tbl_name: Optional[str] = None


@dataclass
class ValidationStep:
    """
    One row of the validation set.

    Planned rows carry the step definition only; rows produced by an
    interrogation additionally carry the result fields (left as None until
    then). `params` holds the assertion parameters keyed by name, e.g.
    {"value": Literal(5)} or {"left": ColumnRef("lo"), "right": Literal(9),
    "inclusive": (True, False)}.
    """

    i: int
    step_id: str
    assertion_type: AssertionType
    i_o: int = 0
    sub: int = 0

    columns_expr: str = ""
    column: Any = None
    params: Dict[str, Any] = field(default_factory=dict)
    na_pass: Optional[bool] = None

    preconditions: Optional[Callable[[Any], Any]] = None
    seg_expr: Any = None
    seg_col: Optional[str] = None
    seg_val: Any = None

    actions: Any = None  # ActionLevels
    label: Optional[str] = None
    brief: Optional[str] = None
    active: Union[bool, Expression, Callable[[Any], Any]] = True

    # ---- results (post-interrogation) ----
    eval_active: Optional[bool] = None
    status: StepStatus = StepStatus.PLANNED
    all_passed: Optional[bool] = None
    n: Optional[int] = None
    n_passed: Optional[int] = None
    n_failed: Optional[int] = None
    f_passed: Optional[float] = None
    f_failed: Optional[float] = None
    warn: Optional[bool] = None
    stop: Optional[bool] = None
    notify: Optional[bool] = None
    error: Optional[StepCondition] = None
    warning: Optional[StepCondition] = None
    time_processed: Optional[datetime] = None
    proc_duration_s: Optional[float] = None

    extract: Any = field(default=None, repr=False, compare=False)  # FailedRows

    def __repr__(self) -> str:
        col = f" {describe(self.column)}" if self.column is not None else ""
        if self.status in (StepStatus.PLANNED, StepStatus.INACTIVE):
            return f"ValidationStep({self.step_id}: {self.assertion_type}{col}) {self.status.value.upper()}"
        if self.status == StepStatus.ERRORED:
            return f"ValidationStep({self.step_id}: {self.assertion_type}{col}) ERRORED"
        return (
            f"ValidationStep({self.step_id}: {self.assertion_type}{col}) "
            f"{self.status.value.upper()} - {self.n_failed}/{self.n} failed"
        )

    # ------------------------------------------------------------------ #

    @property
    def errored(self) -> bool:
        return self.error is not None

    @property
    def values(self) -> Any:
        """Display form of the assertion parameters."""
        p = self.params
        t = self.assertion_type
        if "value" in p:
            return _display(p["value"])
        if "left" in p:
            return [_display(p["left"]), _display(p["right"])]
        if "set" in p:
            return list(p["set"])
        if "regex" in p:
            return p["regex"]
        if "schema" in p:
            return str(p["schema"])
        if t == AssertionType.CONJOINTLY:
            return [f"{s.assertion_type}({describe(s.column)})" for s in p.get("steps", [])]
        if "expr" in p:
            return _display_callable(p["expr"])
        if "fn" in p:
            return _display_callable(p["fn"])
        return None

    def reset_results(self) -> None:
        """Clear every post-interrogation field."""
        for name in _RESULT_FIELDS:
            setattr(self, name, None)
        self.status = StepStatus.PLANNED

    def to_dict(self) -> Dict[str, Any]:
        """Serializable record (callables and references become strings)."""
        return {
            "i": self.i,
            "i_o": self.i_o,
            "sub": self.sub,
            "step_id": self.step_id,
            "assertion_type": self.assertion_type.value,
            "columns_expr": self.columns_expr,
            "column": describe(self.column) if self.column is not None else None,
            "values": self.values,
            "na_pass": self.na_pass,
            "preconditions": _display_callable(self.preconditions) if self.preconditions else None,
            "seg_col": self.seg_col,
            "seg_val": None if self.seg_val is ALL_VALUES else self.seg_val,
            "actions": self.actions.to_dict() if self.actions is not None else None,
            "label": self.label,
            "brief": self.brief,
            "active": self.active if isinstance(self.active, bool) else _display_callable(self.active),
            "eval_active": self.eval_active,
            "status": self.status.value,
            "all_passed": self.all_passed,
            "n": self.n,
            "n_passed": self.n_passed,
            "n_failed": self.n_failed,
            "f_passed": self.f_passed,
            "f_failed": self.f_failed,
            "warn": self.warn,
            "stop": self.stop,
            "notify": self.notify,
            "error": self.error.to_dict() if self.error else None,
            "warning": self.warning.to_dict() if self.warning else None,
            "time_processed": self.time_processed.isoformat() if self.time_processed else None,
            "proc_duration_s": self.proc_duration_s,
        }


_RESULT_FIELDS = (
    "eval_active", "all_passed", "n", "n_passed", "n_failed", "f_passed",
    "f_failed", "warn", "stop", "notify", "error", "warning",
    "time_processed", "proc_duration_s", "extract",
)


def _display(value: Any) -> Any:
    if isinstance(value, Literal):
        return value.value
    if isinstance(value, (ColumnRef, Expression, Selector)):
        return str(value)
    return value


def _display_callable(fn: Any) -> str:
    if isinstance(fn, Expression):
        return str(fn)
    if isinstance(fn, str):
        return fn
    name = getattr(fn, "__name__", None)
    if name and name != "<lambda>":
        return name
    return str(fn) if not callable(fn) else "<function>"
