"""Custom exception hierarchy for throttled_warnings.

These exceptions standardize error signaling across the library. All of them
inherit from :class:`ThrottledWarningsError` and support structured error
payloads via the ``details`` kwarg.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ThrottledWarningsError",
    "ValidationError",
    "MissingMessageError",
    "TimeoutSpecError",
    "UnknownCallError",
    "ConfigurationError",
    "explain_exception",
]


class ThrottledWarningsError(Exception):
    """Base class for library-specific errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Attach structured error details alongside the user-facing message."""
        super().__init__(message)
        self.details: dict[str, Any] | None = details

    def __repr__(self) -> str:  # pragma: no cover - repr stability check in tests
        """Return the exception representation with the message payload."""
        cls = self.__class__.__name__
        return f"{cls}({super().__str__()!r})"


class ValidationError(ThrottledWarningsError):
    """Call arguments failed validation."""


class MissingMessageError(ValidationError):
    """A warning was requested without a message."""


class TimeoutSpecError(ValidationError):
    """The timeout argument is present but unset, NaN or negative."""


class UnknownCallError(ValidationError):
    """The positional arguments match none of the recognised call shapes."""


class ConfigurationError(ThrottledWarningsError):
    """Invalid configuration read from the environment or pyproject.toml."""


def explain_exception(e: Exception) -> str:
    """Return a human-readable multi-line description of an exception.

    Library-specific ``ThrottledWarningsError`` instances are rendered with
    their structured details. Other exceptions fall back to ``str(e)``.

    Examples
    --------
    >>> from throttled_warnings.utils.exceptions import TimeoutSpecError, explain_exception
    >>> e = TimeoutSpecError("timeout ill-specified", details={"timeout": None})
    >>> print(explain_exception(e))
    TimeoutSpecError: timeout ill-specified
      Details: {'timeout': None}
    """
    if isinstance(e, ThrottledWarningsError):
        lines = [f"{e.__class__.__name__}: {str(e)}"]
        if e.details is not None:
            lines.append(f"  Details: {e.details}")
        return "\n".join(lines)
    return str(e)
