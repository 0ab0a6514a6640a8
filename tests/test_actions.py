"""Tests for threshold configuration, classification and dispatch."""

import pytest

from plumbline.config.models import (
    ActionLevels,
    action_levels,
    stop_on_fail,
    threshold_mode,
    warn_on_fail,
)
from plumbline.engine.actions import classify, dispatch, exceeds
from plumbline.errors import ConfigurationError, DispatchError, StopValidation
from plumbline.plan.types import ActionContext


def _ctx(**kw):
    base = dict(
        level="", i=1, step_id="0001", assertion_type="col_vals_gt", column="a",
        brief=None, n=10, n_passed=7, n_failed=3, f_failed=0.3,
    )
    base.update(kw)
    return ActionContext(**base)


class TestThresholdValues:
    """How threshold numbers are read."""

    def test_int_is_absolute(self):
        assert threshold_mode(3) == "absolute"

    def test_float_at_least_one_is_absolute(self):
        assert threshold_mode(1.0) == "absolute"
        assert threshold_mode(2.5) == "absolute"

    def test_fraction_is_proportional(self):
        assert threshold_mode(0.2) == "proportional"

    @pytest.mark.parametrize("bad", [0, -1, -0.5, True, "3"])
    def test_invalid_thresholds(self, bad):
        with pytest.raises(ConfigurationError):
            action_levels(warn_at=bad)

    def test_unknown_callback_level(self):
        with pytest.raises(ConfigurationError):
            action_levels(warn_at=1, fns={"panic": print})

    def test_callback_must_be_callable(self):
        with pytest.raises(ConfigurationError):
            action_levels(warn_at=1, fns={"warn": "print"})

    def test_to_dict(self):
        levels = action_levels(warn_at=0.1, stop_at=5, fns={"stop": print})
        assert levels.to_dict() == {"warn_at": 0.1, "stop_at": 5, "notify_at": None, "fns": ["stop"]}

    def test_model_is_frozen(self):
        levels = ActionLevels(warn_at=1)
        with pytest.raises(Exception):
            levels.warn_at = 2


class TestClassify:
    """classify() compares failure metrics against each configured tier."""

    def test_fraction_fires(self):
        flags = classify(3, 0.3, action_levels(warn_at=0.2))
        assert flags == {"notify": None, "warn": True, "stop": None}

    def test_absolute_does_not_fire(self):
        assert classify(3, 0.3, action_levels(warn_at=4))["warn"] is False

    def test_absolute_boundary_is_inclusive(self):
        assert exceeds(3, 3, 0.3) is True
        assert exceeds(0.3, 3, 0.3) is True

    def test_no_levels(self):
        assert classify(10, 1.0, None) == {"notify": None, "warn": None, "stop": None}

    def test_single_unit_check(self):
        flags = classify(1, 1.0, action_levels(notify_at=1, warn_at=0.5, stop_at=2))
        assert flags == {"notify": True, "warn": True, "stop": False}

    def test_passing_step(self):
        flags = classify(0, 0.0, action_levels(notify_at=1, warn_at=0.01))
        assert flags["notify"] is False and flags["warn"] is False


class TestDispatch:
    """Callbacks fire once each, in notify -> warn -> stop order."""

    def test_order(self):
        seen = []
        levels = action_levels(
            warn_at=1, stop_at=1, notify_at=1,
            fns={
                "stop": lambda c: seen.append(c.level),
                "warn": lambda c: seen.append(c.level),
                "notify": lambda c: seen.append(c.level),
            },
        )
        dispatch(levels, classify(3, 0.3, levels), _ctx())
        assert seen == ["notify", "warn", "stop"]

    def test_only_fired_tiers(self):
        seen = []
        levels = action_levels(
            warn_at=1, stop_at=5,
            fns={"warn": lambda c: seen.append("warn"), "stop": lambda c: seen.append("stop")},
        )
        dispatch(levels, classify(3, 0.3, levels), _ctx())
        assert seen == ["warn"]

    def test_context_passed(self):
        got = []
        levels = action_levels(warn_at=1, fns={"warn": got.append})
        dispatch(levels, {"notify": None, "warn": True, "stop": None}, _ctx(step_id="s1"))
        assert got[0].step_id == "s1"
        assert got[0].n_failed == 3
        assert got[0].level == "warn"

    def test_callback_error_is_wrapped(self):
        with pytest.raises(DispatchError) as exc:
            dispatch(stop_on_fail(), {"notify": None, "warn": None, "stop": True}, _ctx())
        assert isinstance(exc.value.cause, StopValidation)
        assert exc.value.level == "stop"

    def test_warn_on_fail_emits_warning(self):
        with pytest.warns(UserWarning, match="warn threshold"):
            dispatch(warn_on_fail(), {"notify": None, "warn": True, "stop": None}, _ctx())
