"""Configuration for the process-wide notifier.

Defaults can be overridden from ``[tool.throttled_warnings]`` in the working
directory's ``pyproject.toml`` and from the ``TW_WARNINGS`` environment
variable, in that order.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Tuple

from .calls import resolve_timeout
from .utils.config_helpers import coerce_bool, coerce_string_tuple, read_pyproject_section, split_csv
from .utils.exceptions import ConfigurationError

ENV_VAR = "TW_WARNINGS"


@dataclass(frozen=True)
class NotifierConfig:
    """Settings applied when a :class:`~throttled_warnings.dispatch.Notifier` is created or reset.

    Parameters
    ----------
    default_timeout : float
        Suppression window in seconds for warnings issued without a timeout.
        ``math.inf`` (the default) shows each warning once per call site.
    muted : bool
        Start with every warning muted.
    ignore : tuple of str
        Messages or identifiers muted from the start.
    preamble_prefixes : tuple of str
        Function-name prefixes of wrapper frames skipped when deriving a call
        site's identity.
    postamble_prefixes : tuple of str
        Function-name prefixes at which identity derivation stops.
    stacklevel : int
        Forwarded to ``warnings.warn`` so the warning points at user code.
    """

    default_timeout: float = math.inf
    muted: bool = False
    ignore: Tuple[str, ...] = ()
    preamble_prefixes: Tuple[str, ...] = ("_preamble",)
    postamble_prefixes: Tuple[str, ...] = ("_postamble",)
    stacklevel: int = 2

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: "NotifierConfig | None" = None) -> "NotifierConfig":
        """Merge a ``pyproject.toml`` style mapping into *base*."""
        cfg = base if base is not None else cls()
        changes: dict[str, Any] = {}
        if "default_timeout" in data:
            changes["default_timeout"] = _timeout(data["default_timeout"], source="default_timeout")
        if "muted" in data:
            changes["muted"] = coerce_bool(data["muted"])
        for name in ("ignore", "preamble_prefixes", "postamble_prefixes"):
            if name in data:
                changes[name] = coerce_string_tuple(data[name])
        if "stacklevel" in data:
            changes["stacklevel"] = _stacklevel(data["stacklevel"])
        return replace(cfg, **changes)

    @classmethod
    def from_pyproject(
        cls, base: "NotifierConfig | None" = None, *, root: Path | None = None
    ) -> "NotifierConfig":
        """Merge ``[tool.throttled_warnings]`` overrides with ``base`` defaults."""
        section = read_pyproject_section(("tool", "throttled_warnings"), root=root)
        section.pop("logging", None)
        return cls.from_mapping(section, base)

    @classmethod
    def from_env(cls, base: "NotifierConfig | None" = None) -> "NotifierConfig":
        """Merge ``TW_WARNINGS`` overrides with ``base`` defaults.

        The variable holds comma separated tokens, e.g.
        ``TW_WARNINGS="timeout=60,ignore=io:disk|io:net"``.
        """
        cfg = base if base is not None else cls()
        tokens = split_csv(os.getenv(ENV_VAR))
        changes: dict[str, Any] = {}
        for token in tokens:
            name, _, value = token.partition("=")
            name = name.strip().lower()
            if name == "off":
                changes["muted"] = True
            elif name == "on":
                changes["muted"] = False
            elif name == "once":
                changes["default_timeout"] = math.inf
            elif name == "timeout":
                changes["default_timeout"] = _timeout(value, source=ENV_VAR)
            elif name == "ignore":
                changes["ignore"] = split_csv(value, sep="|")
            elif name == "preamble":
                changes["preamble_prefixes"] = split_csv(value, sep="|")
            elif name == "postamble":
                changes["postamble_prefixes"] = split_csv(value, sep="|")
            elif name == "stacklevel":
                changes["stacklevel"] = _stacklevel(value)
            else:
                raise ConfigurationError(
                    f"Unknown {ENV_VAR} token {token!r}", details={"token": token}
                )
        return replace(cfg, **changes)

    @classmethod
    def load(cls) -> "NotifierConfig":
        """Return defaults overridden by pyproject.toml, then by the environment."""
        return cls.from_env(cls.from_pyproject())


def _timeout(value: Any, *, source: str) -> float:
    seconds = resolve_timeout(value)
    if seconds is None:
        raise ConfigurationError(
            "Timeout must be a non-negative number of seconds",
            details={"source": source, "value": value},
        )
    return seconds


def _stacklevel(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        level = 0
    if level < 1:
        raise ConfigurationError(
            "stacklevel must be a positive integer", details={"value": value}
        )
    return level


__all__ = ["ENV_VAR", "NotifierConfig"]
