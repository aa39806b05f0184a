"""Configuration parsing and coercion utilities.

Helpers for reading external configuration sources such as
``pyproject.toml`` and environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Sequence, Tuple

try:
    import tomllib as _tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as _tomllib  # type: ignore[no-redef]


def read_pyproject_section(path: Sequence[str], *, root: Path | None = None) -> Dict[str, Any]:
    """Return a mapping from the requested ``pyproject.toml`` section.

    Parameters
    ----------
    path : Sequence[str]
        Nested keys to traverse in the pyproject.toml structure.
        For example, ``("tool", "throttled_warnings")`` navigates to
        ``[tool.throttled_warnings]``.
    root : Path, optional
        Directory holding ``pyproject.toml``. Defaults to the working directory.

    Returns
    -------
    Dict[str, Any]
        The requested section, or an empty dict if the file does not exist,
        cannot be parsed, or lacks the section.
    """
    candidate = (root or Path.cwd()) / "pyproject.toml"
    if not candidate.exists():
        return {}
    try:
        with candidate.open("rb") as fh:
            data = _tomllib.load(fh)
    except (OSError, _tomllib.TOMLDecodeError):  # pragma: no cover - permissive fallback
        return {}

    cursor: Any = data
    for key in path:
        if isinstance(cursor, dict) and key in cursor:
            cursor = cursor[key]
        else:
            return {}
    if isinstance(cursor, dict):
        return dict(cursor)
    return {}


def split_csv(value: str | None, sep: str = ",") -> Tuple[str, ...]:
    """Split a separated string into a tuple of stripped, non-empty entries.

    Examples
    --------
    >>> split_csv("foo, bar , baz")
    ('foo', 'bar', 'baz')

    >>> split_csv("a|b", sep="|")
    ('a', 'b')

    >>> split_csv(None)
    ()
    """
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(sep) if item.strip())


def coerce_string_tuple(value: Any) -> Tuple[str, ...]:
    """Coerce a configuration value into a tuple of strings.

    - ``None`` → empty tuple
    - ``str`` → tuple with single entry (if non-empty)
    - ``Iterable[str]`` → tuple of non-empty entries
    - Other types → empty tuple

    Examples
    --------
    >>> coerce_string_tuple("myvalue")
    ('myvalue',)

    >>> coerce_string_tuple(["foo", "bar", ""])
    ('foo', 'bar')

    >>> coerce_string_tuple(None)
    ()
    """
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, Iterable):
        return tuple(item for item in value if isinstance(item, str) and item)
    return ()


def coerce_bool(value: str | bool | None) -> bool:
    """Interpret common truthy strings (``1``, ``true``, ``yes``, ``on``) as True."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on", "enable"}
