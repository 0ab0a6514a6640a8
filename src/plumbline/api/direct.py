# src/plumbline/api/direct.py
"""
Direct-table checks, for pipelines and tests:

    expect(df, lambda a: a.col_vals_not_null("id"))            # raises on failure
    ok = passes(df, lambda a: a.col_vals_gt("amount", 0), threshold=0.01)

`build` receives a fresh agent bound to the table and adds one or more steps.
A step fails when its failing units reach `threshold` (an absolute count, or
a fraction when in (0, 1)). Errors captured on a step are re-raised, since
there is no report to carry them.
"""

from __future__ import annotations

from typing import Any, Callable, List, Union

from plumbline.config.models import action_levels
from plumbline.errors import ExpectationFailed
from plumbline.plan.agent import Agent, create_agent
from plumbline.plan.refs import describe
from plumbline.plan.types import StepStatus, ValidationStep


def _run(tbl: Any, build: Callable[[Agent], Any], threshold: Union[int, float]) -> List[ValidationStep]:
    agent = create_agent(tbl, actions=action_levels(stop_at=threshold))
    build(agent)
    agent.interrogate(extract_limit=10)
    for row in agent.validation_set:
        if row.status == StepStatus.ERRORED and row.error.exception is not None:
            raise row.error.exception
    return [r for r in agent.validation_set if r.stop]


def expect(tbl: Any, build: Callable[[Agent], Any], threshold: Union[int, float] = 1) -> Any:
    """Return `tbl` unchanged, or raise ExpectationFailed."""
    failed = _run(tbl, build, threshold)
    if failed:
        lines = [
            f"{r.assertion_type}({describe(r.column)}): {r.n_failed} of {r.n} test units failed"
            for r in failed
        ]
        raise ExpectationFailed("Expectation failed:\n  " + "\n  ".join(lines))
    return tbl


def passes(tbl: Any, build: Callable[[Agent], Any], threshold: Union[int, float] = 1) -> bool:
    return not _run(tbl, build, threshold)
