# src/plumbline/config/models.py
"""
Threshold configuration.

An `ActionLevels` holds up to three failure thresholds (notify < warn < stop
by convention, not enforced) and optional callbacks fired when a threshold is
reached:

    ActionLevels(warn_at=0.1, stop_at=0.25, fns={"stop": page_oncall})

Threshold values are read as:
  - int, or float >= 1   -> absolute count of failing test units
  - float in (0, 1)      -> fraction of failing test units
"""

from __future__ import annotations

import warnings
from typing import Any, Callable, Dict, Literal as TypingLiteral, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ThresholdMode = TypingLiteral["absolute", "proportional"]
LEVELS = ("notify", "warn", "stop")

Threshold = Optional[Union[int, float]]


def threshold_mode(value: Union[int, float]) -> ThresholdMode:
    if isinstance(value, int) or value >= 1:
        return "absolute"
    return "proportional"


class ActionLevels(BaseModel):
    """Per-step (or agent-default) failure thresholds plus their callbacks."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    warn_at: Threshold = Field(default=None, description="Failure level that sets `warn`.")
    stop_at: Threshold = Field(default=None, description="Failure level that sets `stop`.")
    notify_at: Threshold = Field(default=None, description="Failure level that sets `notify`.")
    fns: Dict[str, Callable[..., Any]] = Field(default_factory=dict)

    @field_validator("warn_at", "stop_at", "notify_at", mode="before")
    @classmethod
    def _check_threshold(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"threshold must be a number, got {type(v).__name__}")
        if v <= 0:
            raise ValueError(f"threshold must be positive, got {v}")
        return v

    @field_validator("fns", mode="before")
    @classmethod
    def _check_fns(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("fns must be a dict of level -> callable")
        for key, fn in v.items():
            if key not in LEVELS:
                raise ValueError(f"unknown action level '{key}' (expected one of {LEVELS})")
            if not callable(fn):
                raise ValueError(f"action for '{key}' must be callable")
        return v

    def threshold(self, level: str) -> Threshold:
        return getattr(self, f"{level}_at")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warn_at": self.warn_at,
            "stop_at": self.stop_at,
            "notify_at": self.notify_at,
            "fns": sorted(self.fns),
        }


def action_levels(
    warn_at: Threshold = None,
    stop_at: Threshold = None,
    notify_at: Threshold = None,
    fns: Optional[Dict[str, Callable[..., Any]]] = None,
) -> ActionLevels:
    """Functional constructor for ActionLevels."""
    from plumbline.errors import ConfigurationError

    try:
        return ActionLevels(warn_at=warn_at, stop_at=stop_at, notify_at=notify_at, fns=fns or {})
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


# --------------------------------------------------------------------------- #
# Ready-made callbacks
# --------------------------------------------------------------------------- #

def _raise_stop(ctx: Any) -> None:
    from plumbline.errors import StopValidation

    raise StopValidation(
        f"The validation (`{ctx.assertion_type}()`) meets or exceeds the stop "
        f"threshold: step {ctx.step_id} has {ctx.n_failed} failing test units "
        f"of {ctx.n}"
    )


def _emit_warning(ctx: Any) -> None:
    warnings.warn(
        f"The validation (`{ctx.assertion_type}()`) meets or exceeds the warn "
        f"threshold: step {ctx.step_id} has {ctx.n_failed} failing test units "
        f"of {ctx.n}",
        UserWarning,
        stacklevel=2,
    )


def stop_on_fail(stop_at: Union[int, float] = 1) -> ActionLevels:
    """Raise StopValidation (wrapped in DispatchError) once `stop_at` is met."""
    return action_levels(stop_at=stop_at, fns={"stop": _raise_stop})


def warn_on_fail(warn_at: Union[int, float] = 1) -> ActionLevels:
    """Emit a UserWarning once `warn_at` is met."""
    return action_levels(warn_at=warn_at, fns={"warn": _emit_warning})
