# src/plumbline/__init__.py
"""
plumbline: validation plans for tabular data (polars, duckdb, pandas, arrow).

    import plumbline as pb

    agent = (
        pb.create_agent(df, tbl_name="orders")
        .col_vals_gt("amount", 0)
        .col_vals_in_set("status", ["open", "closed"])
        .interrogate()
    )
    agent.all_passed()
"""

from plumbline.api.direct import expect, passes
from plumbline.config.models import (
    ActionLevels,
    action_levels,
    stop_on_fail,
    warn_on_fail,
)
from plumbline.config.settings import PlumblineSettings
from plumbline.errors import (
    ConfigurationError,
    DispatchError,
    ExecutionError,
    ExpectationFailed,
    PlumblineError,
    ResolutionError,
    StepError,
    StopValidation,
    TransformError,
)
from plumbline.logging import configure_logging
from plumbline.plan.agent import Agent, create_agent
from plumbline.plan.refs import (
    col,
    contains,
    ends_with,
    everything,
    expr,
    has_columns,
    matches,
    one_of,
    starts_with,
)
from plumbline.plan.schema import ColSchema, col_schema
from plumbline.plan.types import ActionContext, AssertionType, StepStatus, ValidationStep
from plumbline.reporters.rich_reporter import print_report
from plumbline.version import VERSION

__version__ = VERSION

__all__ = [
    "ActionContext",
    "ActionLevels",
    "Agent",
    "AssertionType",
    "ColSchema",
    "ConfigurationError",
    "DispatchError",
    "ExecutionError",
    "ExpectationFailed",
    "PlumblineError",
    "PlumblineSettings",
    "ResolutionError",
    "StepError",
    "StepStatus",
    "StopValidation",
    "TransformError",
    "ValidationStep",
    "action_levels",
    "col",
    "col_schema",
    "configure_logging",
    "contains",
    "create_agent",
    "ends_with",
    "everything",
    "expect",
    "expr",
    "has_columns",
    "matches",
    "one_of",
    "passes",
    "print_report",
    "starts_with",
    "stop_on_fail",
    "warn_on_fail",
]
