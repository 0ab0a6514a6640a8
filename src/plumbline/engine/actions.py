# src/plumbline/engine/actions.py
"""
Threshold Classifier / Action Dispatcher.

    classify(n_failed, f_failed, levels) -> {"notify": .., "warn": .., "stop": ..}

A tier without a configured threshold is never evaluated and reports None.
Callbacks fire in the fixed order notify -> warn -> stop, once each. A
callback that raises aborts the interrogation (wrapped in DispatchError).
"""

from __future__ import annotations

from typing import Dict, Optional

from plumbline.config.models import LEVELS, ActionLevels, threshold_mode
from plumbline.errors import DispatchError
from plumbline.logging import get_logger
from plumbline.plan.types import ActionContext

_logger = get_logger(__name__)


def exceeds(threshold: float, n_failed: int, f_failed: float) -> bool:
    """Absolute thresholds compare counts, proportional ones fractions."""
    if threshold_mode(threshold) == "absolute":
        return n_failed >= threshold
    return f_failed >= threshold


def classify(
    n_failed: int,
    f_failed: float,
    levels: Optional[ActionLevels],
) -> Dict[str, Optional[bool]]:
    out: Dict[str, Optional[bool]] = {level: None for level in LEVELS}
    if levels is None:
        return out
    for level in LEVELS:
        thr = levels.threshold(level)
        if thr is not None:
            out[level] = exceeds(thr, n_failed, f_failed)
    return out


def dispatch(
    levels: Optional[ActionLevels],
    flags: Dict[str, Optional[bool]],
    context: ActionContext,
) -> None:
    """Invoke the registered callback for every tier that fired."""
    if levels is None or not levels.fns:
        return
    for level in LEVELS:
        if not flags.get(level):
            continue
        fn = levels.fns.get(level)
        if fn is None:
            continue
        ctx = ActionContext(**{**context.__dict__, "level": level})
        _logger.debug("Dispatching '%s' action for step %s", level, ctx.step_id)
        try:
            fn(ctx)
        except Exception as e:
            raise DispatchError(level, ctx.step_id, e) from e
