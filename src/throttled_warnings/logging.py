"""Logging utilities for throttled warnings.

Structured logging context and diagnostic-mode support. The dispatcher binds
the identity of the warning it is deciding on, and the decision itself
(``fired``, ``suppressed`` or ``ignored``), so that handlers attached to the
package logger (or to ``py.warnings`` via ``logging.captureWarnings``) can
see which call site a record belongs to and what happened to it.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
import os
from typing import Any, Dict, Iterator

from .utils.config_helpers import coerce_bool, read_pyproject_section

_CONTEXT_KEYS = (
    "warning_key",
    "warning_origin",
    "warning_identifier",
    "warning_decision",
)

_context_vars = {key: contextvars.ContextVar(key, default=None) for key in _CONTEXT_KEYS}


def diagnostic_mode() -> bool:
    """Return whether suppression decisions should be logged at INFO.

    Reads ``TW_DIAGNOSTIC_MODE`` or ``[tool.throttled_warnings.logging]``
    ``diagnostic_mode`` from pyproject.toml. Env var takes precedence.
    """
    env_value = os.environ.get("TW_DIAGNOSTIC_MODE")
    if env_value is not None:
        return coerce_bool(env_value)

    config = read_pyproject_section(("tool", "throttled_warnings", "logging"))
    return coerce_bool(config.get("diagnostic_mode")) if config else False


def get_logging_context() -> Dict[str, Any]:
    """Return current structured logging context."""
    return {key: var.get() for key, var in _context_vars.items() if var.get() is not None}


@contextlib.contextmanager
def logging_context(**kwargs: Any) -> Iterator[None]:
    """Context manager to temporarily set logging context fields."""
    tokens = {}
    for key, value in kwargs.items():
        if key in _context_vars:
            tokens[key] = _context_vars[key].set(value)
    try:
        yield
    finally:
        for key, token in tokens.items():
            _context_vars[key].reset(token)


def decision_context(
    decision: str, key: Any = None, identifier: str | None = None
) -> contextlib.AbstractContextManager[None]:
    """Bind the outcome of one dispatch, and the key it was made for."""
    return logging_context(
        warning_key=str(key) if key is not None else None,
        warning_origin=getattr(key, "origin", None),
        warning_identifier=identifier,
        warning_decision=decision,
    )


class LoggingContextFilter(logging.Filter):
    """Logging filter that injects structured context into records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject structured context into the log record."""
        context = get_logging_context()
        for key in _CONTEXT_KEYS:
            setattr(record, key, context.get(key))
        return True


def ensure_logging_context_filter(logger_name: str = "throttled_warnings") -> None:
    """Attach the context filter to the named logger once."""
    logger = logging.getLogger(logger_name)
    for existing in logger.filters:
        if isinstance(existing, LoggingContextFilter):
            return
    logger.addFilter(LoggingContextFilter())


__all__ = [
    "decision_context",
    "diagnostic_mode",
    "get_logging_context",
    "logging_context",
    "ensure_logging_context_filter",
    "LoggingContextFilter",
]
