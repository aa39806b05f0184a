"""
Throttled Warnings (throttled_warnings).

is a Python package for deduplicated, rate-limited warnings: each call site
(or explicit identifier) warns once, or at most once per timeout window, and
warnings can be muted globally or one by one.
"""

import logging as _logging

from .calls import (
    Clear,
    IdMessage,
    IdTimedMessage,
    Last,
    Message,
    Off,
    On,
    Once,
    Query,
    Restore,
    SetTimeout,
    TimedMessage,
    parse_call,
)
from .config import NotifierConfig
from .dispatch import (
    DispatchResult,
    LastWarning,
    NotificationWarning,
    Notifier,
    QueryResult,
    current_notifier,
    emit_warning,
    get_notifier,
    notifier_context,
    reset_notifier,
    warn,
)
from .identity import Frame, IdentityKey, InspectFrameSource, StaticFrameSource, sanitize
from .registry import WarningState
from .timers import ManualClock, MonotonicClock

# Provide a default no-op handler to avoid "No handler" warnings for library users.
_logging.getLogger(__name__).addHandler(_logging.NullHandler())

__version__ = "v0.1.0"

__all__ = [
    "Clear",
    "current_notifier",
    "DispatchResult",
    "emit_warning",
    "Frame",
    "get_notifier",
    "IdentityKey",
    "IdMessage",
    "IdTimedMessage",
    "InspectFrameSource",
    "Last",
    "LastWarning",
    "ManualClock",
    "Message",
    "MonotonicClock",
    "NotificationWarning",
    "Notifier",
    "NotifierConfig",
    "notifier_context",
    "Off",
    "On",
    "Once",
    "parse_call",
    "Query",
    "QueryResult",
    "reset_notifier",
    "Restore",
    "sanitize",
    "SetTimeout",
    "StaticFrameSource",
    "TimedMessage",
    "warn",
    "WarningState",
]
