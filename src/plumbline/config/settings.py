# src/plumbline/config/settings.py
"""
Runtime settings.

Defaults can be overridden in code (`create_agent(settings=...)`) or through
environment variables:

    PLUMBLINE_EXTRACT_FAILED   "1"/"0"/"true"/"false"
    PLUMBLINE_EXTRACT_LIMIT    max failing rows kept per step
    PLUMBLINE_LOG_LEVEL        DEBUG | INFO | WARNING | ...
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class PlumblineSettings(BaseModel):
    extract_failed: bool = Field(default=True, description="Keep failing rows for row-based steps.")
    extract_limit: int = Field(default=5000, description="Cap on extracted failing rows per step.")
    log_level: Optional[str] = Field(default=None, description="When set, agents call configure_logging() with it.")

    @field_validator("extract_limit")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 0:
            raise ValueError("extract_limit must be >= 0")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PlumblineSettings":
        env = os.environ if environ is None else environ
        data = {}

        raw = env.get("PLUMBLINE_EXTRACT_FAILED")
        if raw is not None:
            low = raw.strip().lower()
            if low in _TRUE:
                data["extract_failed"] = True
            elif low in _FALSE:
                data["extract_failed"] = False
            else:
                raise ValueError(f"PLUMBLINE_EXTRACT_FAILED: cannot parse {raw!r} as a boolean")

        raw = env.get("PLUMBLINE_EXTRACT_LIMIT")
        if raw is not None:
            try:
                data["extract_limit"] = int(raw)
            except ValueError:
                raise ValueError(f"PLUMBLINE_EXTRACT_LIMIT: expected an integer, got {raw!r}") from None

        raw = env.get("PLUMBLINE_LOG_LEVEL")
        if raw:
            data["log_level"] = raw.strip().upper()

        return cls(**data)


def resolve_settings(
    settings: Optional[PlumblineSettings] = None,
    extract_limit: Optional[int] = None,
    extract_failed: Optional[bool] = None,
) -> PlumblineSettings:
    """Environment defaults, then explicit settings, then keyword overrides."""
    base = settings if settings is not None else PlumblineSettings.from_env()
    updates = {}
    if extract_limit is not None:
        updates["extract_limit"] = extract_limit
    if extract_failed is not None:
        updates["extract_failed"] = extract_failed
    if updates:
        return PlumblineSettings(**{**base.model_dump(), **updates})
    return base
