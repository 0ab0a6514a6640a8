# src/plumbline/errors.py
"""
Error taxonomy for plumbline.

Two families:
  - build-time errors (raised immediately while a plan is assembled)
  - table-dependent errors (raised during interrogation and captured on the
    step that produced them; sibling steps keep running)

Action-dispatch failures are the exception: they propagate out of
`Agent.interrogate()` because actions are the user's escalation mechanism.
"""

from __future__ import annotations

from typing import Any, Optional


class PlumblineError(Exception):
    """Base class for every error raised by plumbline."""


# --------------------------------------------------------------------------- #
# Build-time
# --------------------------------------------------------------------------- #

class ConfigurationError(PlumblineError, ValueError):
    """Invalid step parameters detected while building a plan."""


# --------------------------------------------------------------------------- #
# Table-dependent (captured per step)
# --------------------------------------------------------------------------- #

class StepError(PlumblineError):
    """Base for errors that are contained to a single validation step."""

    kind: str = "step"


class ResolutionError(StepError):
    """A column or value reference could not be resolved against the table."""

    kind = "resolution"

    def __init__(self, reference: Any, available: Optional[list] = None, detail: str = ""):
        self.reference = reference
        self.available = list(available or [])
        msg = f"Column reference {reference!r} could not be resolved"
        if detail:
            msg += f": {detail}"
        elif self.available:
            shown = ", ".join(self.available[:10])
            more = "" if len(self.available) <= 10 else f" (+{len(self.available) - 10} more)"
            msg += f" (available: {shown}{more})"
        super().__init__(msg)


class TransformError(StepError):
    """A precondition or segmentation expression failed to evaluate."""

    kind = "transform"


class ExecutionError(StepError):
    """The assertion's own computation failed (type mismatch, unsupported op)."""

    kind = "execution"


# --------------------------------------------------------------------------- #
# Propagating
# --------------------------------------------------------------------------- #

class DispatchError(PlumblineError):
    """An action callback raised; interrogation is aborted."""

    def __init__(self, level: str, step_id: str, cause: BaseException):
        self.level = level
        self.step_id = step_id
        self.cause = cause
        super().__init__(
            f"Action for '{level}' on step '{step_id}' raised "
            f"{type(cause).__name__}: {cause}"
        )


class StopValidation(PlumblineError):
    """Raised by the `stop_on_fail` action helper."""


class ExpectationFailed(PlumblineError, AssertionError):
    """Raised by `plumbline.expect()` when a direct-table check fails."""
