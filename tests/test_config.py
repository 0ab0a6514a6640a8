"""Tests for settings, logging helpers and the error taxonomy."""

import logging

import pytest

from plumbline.config.settings import PlumblineSettings, resolve_settings
from plumbline.errors import (
    ConfigurationError,
    DispatchError,
    ExecutionError,
    ResolutionError,
    StepError,
    TransformError,
)
from plumbline.logging import configure_logging, get_logger, log_exception
from plumbline.plan.types import StepCondition


class TestSettings:
    """PlumblineSettings defaults and environment overrides."""

    def test_defaults(self):
        s = PlumblineSettings.from_env({})
        assert (s.extract_failed, s.extract_limit, s.log_level) == (True, 5000, None)

    def test_env(self):
        s = PlumblineSettings.from_env({
            "PLUMBLINE_EXTRACT_FAILED": "off",
            "PLUMBLINE_EXTRACT_LIMIT": "20",
            "PLUMBLINE_LOG_LEVEL": "debug",
        })
        assert (s.extract_failed, s.extract_limit, s.log_level) == (False, 20, "DEBUG")

    def test_bad_bool(self):
        with pytest.raises(ValueError, match="PLUMBLINE_EXTRACT_FAILED"):
            PlumblineSettings.from_env({"PLUMBLINE_EXTRACT_FAILED": "maybe"})

    def test_bad_limit(self):
        with pytest.raises(ValueError, match="PLUMBLINE_EXTRACT_LIMIT"):
            PlumblineSettings.from_env({"PLUMBLINE_EXTRACT_LIMIT": "lots"})

    def test_negative_limit(self):
        with pytest.raises(ValueError):
            PlumblineSettings(extract_limit=-1)

    def test_overrides(self):
        base = PlumblineSettings(extract_limit=10)
        s = resolve_settings(base, extract_limit=3, extract_failed=False)
        assert (s.extract_limit, s.extract_failed) == (3, False)
        assert resolve_settings(base) is base

    def test_env_is_read_by_default(self, monkeypatch):
        monkeypatch.setenv("PLUMBLINE_EXTRACT_LIMIT", "7")
        assert resolve_settings().extract_limit == 7


class TestLogging:
    """Logger namespacing and exception logging."""

    def test_namespaced(self):
        assert get_logger("engine.x").name == "plumbline.engine.x"
        assert get_logger("plumbline.plan").name == "plumbline.plan"

    def test_log_exception(self, caplog):
        logger = get_logger("tests")
        with caplog.at_level(logging.WARNING, logger="plumbline"):
            log_exception(logger, "Step failed", ValueError("boom"))
        assert "Step failed: ValueError: boom" in caplog.text

    def test_configure_logging_once(self):
        logger = configure_logging("warning")
        configure_logging("INFO")
        from rich.logging import RichHandler

        assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
        assert logger.level == logging.INFO

    def test_log_level_from_env_applies_on_agent(self, monkeypatch):
        import polars as pl

        import plumbline as pb

        logger = logging.getLogger("plumbline")
        before = logger.level
        monkeypatch.setenv("PLUMBLINE_LOG_LEVEL", "debug")
        try:
            pb.create_agent(pl.DataFrame({"a": [1]}))
            assert logger.getEffectiveLevel() == logging.DEBUG
        finally:
            logger.setLevel(before)

    def test_no_log_level_leaves_logger_alone(self, monkeypatch):
        import polars as pl

        import plumbline as pb

        logger = logging.getLogger("plumbline")
        logger.setLevel(logging.ERROR)
        monkeypatch.delenv("PLUMBLINE_LOG_LEVEL", raising=False)
        try:
            pb.create_agent(pl.DataFrame({"a": [1]}))
            assert logger.level == logging.ERROR
        finally:
            logger.setLevel(logging.NOTSET)


class TestErrors:
    """Error kinds and captured conditions."""

    def test_kinds(self):
        assert ResolutionError("a").kind == "resolution"
        assert TransformError("x").kind == "transform"
        assert ExecutionError("x").kind == "execution"
        assert issubclass(ResolutionError, StepError)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_resolution_message_lists_columns(self):
        msg = str(ResolutionError("zz", ["a", "b"]))
        assert "'zz'" in msg and "available: a, b" in msg

    def test_dispatch_error(self):
        err = DispatchError("stop", "0003", RuntimeError("halt"))
        assert err.level == "stop" and err.step_id == "0003"
        assert "RuntimeError: halt" in str(err)

    def test_condition_from_exception(self):
        cond = StepCondition.from_exception(TransformError("bad"))
        assert cond.to_dict() == {"kind": "transform", "message": "bad", "exception_type": "TransformError"}
