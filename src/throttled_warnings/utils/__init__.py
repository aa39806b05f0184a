"""Shared utilities used across throttled_warnings.

Re-exports the helpers so callers can import directly from
``throttled_warnings.utils`` rather than reaching into individual modules.
"""

from .config_helpers import coerce_bool, coerce_string_tuple, read_pyproject_section, split_csv
from .exceptions import (
    ConfigurationError,
    MissingMessageError,
    ThrottledWarningsError,
    TimeoutSpecError,
    UnknownCallError,
    ValidationError,
    explain_exception,
)

__all__ = [
    "coerce_bool",
    "coerce_string_tuple",
    "ConfigurationError",
    "explain_exception",
    "MissingMessageError",
    "read_pyproject_section",
    "split_csv",
    "ThrottledWarningsError",
    "TimeoutSpecError",
    "UnknownCallError",
    "ValidationError",
]
