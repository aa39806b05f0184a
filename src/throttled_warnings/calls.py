"""Call shapes accepted by the notifier.

Callers may construct the variants below directly. :func:`parse_call`
translates the positional textual interface (``warn("off", "idA")``,
``warn("msg", 60)`` and so on) into one of them.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Union

from .registry import WarningState
from .utils.exceptions import MissingMessageError, UnknownCallError


@dataclass(frozen=True)
class Message:
    """Implicit identity, default timeout."""

    message: str


@dataclass(frozen=True)
class IdMessage:
    """Explicit identifier, default timeout."""

    identifier: str
    message: str


@dataclass(frozen=True)
class TimedMessage:
    """Implicit identity with a timeout in seconds."""

    message: str
    timeout: Any


@dataclass(frozen=True)
class IdTimedMessage:
    """Explicit identifier with a timeout in seconds."""

    identifier: str
    message: str
    timeout: Any


@dataclass(frozen=True)
class Restore:
    """Restore a previously returned :class:`WarningState` verbatim."""

    state: WarningState


@dataclass(frozen=True)
class Clear:
    """Evict cached identity state under the caller's function chain."""


@dataclass(frozen=True)
class Off:
    target: str | None = None


@dataclass(frozen=True)
class On:
    target: str | None = None


@dataclass(frozen=True)
class Once:
    target: str | None = None


@dataclass(frozen=True)
class SetTimeout:
    seconds: Any


@dataclass(frozen=True)
class Last:
    pass


@dataclass(frozen=True)
class Query:
    pass


Emission = Union[Message, IdMessage, TimedMessage, IdTimedMessage]
Command = Union[Off, On, Once, SetTimeout, Last, Query]
Call = Union[Emission, Restore, Clear, Command]

CLEAR_TOKEN = "-clear"

_BARE_COMMANDS = {
    "off": Off,
    "on": On,
    "once": Once,
    "last": Last,
    "query": Query,
    CLEAR_TOKEN: Clear,
}

_TARGETED_COMMANDS = {
    "off": Off,
    "on": On,
    "once": Once,
    "timeout": SetTimeout,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def parse_call(*args: Any) -> Call:
    """Translate 1–3 positional arguments into a call variant.

    >>> parse_call("disk almost full")
    Message(message='disk almost full')
    >>> parse_call("disk almost full", 60)
    TimedMessage(message='disk almost full', timeout=60)
    >>> parse_call("off", "io:disk")
    Off(target='io:disk')
    """
    if not args or args[0] is None or args[0] == "":
        raise MissingMessageError("You need to specify at least a warning message")
    if len(args) > 3:
        raise UnknownCallError(
            "Too many arguments", details={"count": len(args), "requirement": "1 to 3"}
        )

    first = args[0]
    if len(args) == 1:
        if isinstance(first, WarningState):
            return Restore(first)
        if isinstance(first, str) and first in _BARE_COMMANDS:
            return _BARE_COMMANDS[first]()
        return Message(str(first))

    second = args[1]
    if len(args) == 2:
        if isinstance(first, str) and first in _TARGETED_COMMANDS:
            return _TARGETED_COMMANDS[first](second)
        if second is None or _is_number(second):
            return TimedMessage(str(first), second)
        if second == "":
            raise MissingMessageError(
                "You need to specify at least a warning message", details={"identifier": first}
            )
        return IdMessage(str(first), str(second))

    if second is None or second == "":
        raise MissingMessageError(
            "You need to specify at least a warning message", details={"identifier": first}
        )
    return IdTimedMessage(str(first), str(second), args[2])


def resolve_timeout(value: Any) -> float | None:
    """Return *value* as seconds, or ``None`` when it is unusable.

    Strings are accepted so ``timeout "60"`` behaves like ``timeout 60``.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(seconds) or seconds < 0:
        return None
    return seconds
