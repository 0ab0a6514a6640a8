# src/plumbline/logging.py
"""
Logging helpers.

Library code asks for loggers via `get_logger(__name__)` and never touches the
root logger. `configure_logging()` is opt-in for scripts and notebooks.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_ROOT = "plumbline"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under `plumbline`."""
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    level: int = logging.WARNING,
) -> None:
    """Log `message` with the exception summary; full traceback only at DEBUG."""
    logger.log(level, "%s: %s: %s", message, type(exc).__name__, exc)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Traceback for %r", message, exc_info=exc)


def configure_logging(level: Union[int, str, None] = None) -> logging.Logger:
    """
    Attach a rich console handler to the `plumbline` logger.

    Safe to call repeatedly; the handler is only added once.
    """
    from rich.logging import RichHandler

    logger = logging.getLogger(_ROOT)
    resolved: Optional[int]
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = level if level is not None else logging.INFO
    logger.setLevel(resolved)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(show_path=False, rich_tracebacks=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    return logger
