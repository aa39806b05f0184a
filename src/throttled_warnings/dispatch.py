"""Dispatch engine and command interpreter.

:class:`Notifier` owns all suppression state of one process (or one test):
the registry, the timers, the known identities and the ignore set. For each
warning it decides whether to fire now, or to stay quiet and hand back the
message that was shown last time.

Typical use goes through :func:`warn`::

    from throttled_warnings import warn

    for row in rows:
        if row.bad:
            warn("skipping malformed row")        # once per call site
    warn("io:disk", "disk almost full", 60)       # at most once a minute
    state = warn("off", "io:disk")                # mute, keep prior state
    ...
    warn(state)                                   # restore it
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
import math
import sys
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, NamedTuple, Protocol, Tuple

from .calls import (
    Call,
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
    resolve_timeout,
)
from .config import NotifierConfig
from .identity import (
    ORIGIN_EXPLICIT,
    ORIGIN_MESSAGE,
    PACKAGE_DIR,
    FrameSource,
    IdentityKey,
    InspectFrameSource,
    KnownIdentities,
    derive_identity,
    is_within,
)
from .logging import decision_context, diagnostic_mode, ensure_logging_context_filter
from .registry import IgnoreSet, RegistryEntry, SuppressionRegistry, WarningState
from .timers import Clock, MonotonicClock, TimerStore
from .utils.exceptions import MissingMessageError, TimeoutSpecError, UnknownCallError

logger = logging.getLogger(__name__)
ensure_logging_context_filter(__name__)


class NotificationWarning(UserWarning):
    """Warning category emitted by the default primitive.

    ``identifier`` carries the explicit id the warning was issued with, if any.
    """

    def __init__(self, message: str, identifier: str | None = None) -> None:
        super().__init__(message)
        self.identifier = identifier


# Throttling happens before ``warnings.warn`` is reached, so the stdlib's own
# once-per-location registry must not swallow re-armed warnings. Appended, so
# user filters still take precedence.
warnings.filterwarnings("always", category=NotificationWarning, append=True)


class WarnPrimitive(Protocol):
    def __call__(self, message: str, identifier: str | None = None, *, stacklevel: int = 2) -> None:
        """Actually show *message*."""


def emit_warning(message: str, identifier: str | None = None, *, stacklevel: int = 2) -> None:
    """Default primitive: emit a :class:`NotificationWarning` via :mod:`warnings`."""
    warnings.warn(NotificationWarning(message, identifier), stacklevel=stacklevel)


class DispatchResult(NamedTuple):
    """Outcome of one dispatch.

    ``state`` is the mute state captured when the call started (``None`` for
    a short-circuited re-entrant call). ``message`` is the text just shown,
    or the cached text of the previous firing when suppressed.
    """

    state: WarningState | None
    fired: bool
    message: str | None


class LastWarning(NamedTuple):
    message: str
    identifier: str | None
    key: IdentityKey


@dataclass(frozen=True)
class QueryResult:
    """Copy of the notifier's suppression state at the time of a ``query``."""

    entries: Mapping[IdentityKey, RegistryEntry]
    state: WarningState
    default_timeout: float
    overrides: Mapping[str, float] = field(default_factory=dict)
    known: Tuple[Tuple[str, ...], ...] = ()
    metrics: Mapping[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """Return ``origin:dotted.key`` → on/off/once/timeout summary."""
        summary = {}
        for key, entry in self.entries.items():
            muted = self.state.muted_all or entry.last_message in self.state.ignored
            if entry.identifier is not None and entry.identifier in self.state.ignored:
                muted = True
            summary[f"{key.origin}:{key}"] = {
                "state": "off" if muted else "on",
                "once": entry.once,
                "timeout": entry.timeout,
                "deadline": entry.deadline,
                "last_message": entry.last_message,
                "identifier": entry.identifier,
            }
        return summary


def _internal_depth() -> int:
    """Count the consecutive library frames above the caller of this helper."""
    depth = 0
    frame = sys._getframe(1)
    try:
        while frame is not None and is_within(frame.f_code.co_filename, (PACKAGE_DIR,)):
            depth += 1
            frame = frame.f_back
    finally:
        del frame
    return depth


class Notifier:
    """Deduplicating, rate-limited front end to a warn primitive.

    Parameters
    ----------
    config : NotifierConfig, optional
        Initial mute state, default timeout and identity settings.
    clock : Clock, optional
        Monotonic time source; :class:`~throttled_warnings.timers.MonotonicClock`
        by default.
    frame_source : FrameSource, optional
        Supplies caller frames for identity derivation;
        :class:`~throttled_warnings.identity.InspectFrameSource` by default.
    primitive : WarnPrimitive, optional
        Called to actually show a warning; :func:`emit_warning` by default.
        Its exceptions propagate unmodified.
    """

    def __init__(
        self,
        config: NotifierConfig | None = None,
        *,
        clock: Clock | None = None,
        frame_source: FrameSource | None = None,
        primitive: WarnPrimitive | None = None,
    ) -> None:
        self.config = config if config is not None else NotifierConfig()
        self.frame_source: FrameSource = (
            frame_source if frame_source is not None else InspectFrameSource()
        )
        self.primitive: WarnPrimitive = primitive if primitive is not None else emit_warning
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Drop all suppression state and return to the configured defaults."""
        self.registry = SuppressionRegistry()
        self.timers = TimerStore(self.clock)
        self.known = KnownIdentities()
        self.ignore = IgnoreSet(self.config.muted, set(self.config.ignore))
        self.default_timeout = self.config.default_timeout
        self.overrides: Dict[str, float] = {}
        self.last: LastWarning | None = None
        self._diagnostic = diagnostic_mode()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def __call__(self, *args: Any) -> Any:
        """Parse positional arguments and route them to :meth:`dispatch` or :meth:`command`."""
        call = parse_call(*args)
        if isinstance(call, (Off, On, Once, SetTimeout, Last, Query)):
            return self.command(call)
        return self.dispatch(call)

    def dispatch(self, call: Call) -> DispatchResult:
        """Fire, suppress or restore according to *call*."""
        if self._reentrant():
            logger.debug("Ignoring re-entrant call %r", call)
            return DispatchResult(None, False, None)

        state = self.ignore.state()
        if isinstance(call, Restore):
            self.ignore.restore(call.state)
            return DispatchResult(state, False, None)
        if isinstance(call, Clear):
            self._clear()
            return DispatchResult(state, False, None)

        if isinstance(call, Message):
            message, identifier, timeout = call.message, None, self._default_for(call.message, None)
        elif isinstance(call, IdMessage):
            message, identifier = call.message, call.identifier
            timeout = self._default_for(message, identifier)
        elif isinstance(call, TimedMessage):
            message, identifier, timeout = call.message, None, call.timeout
        elif isinstance(call, IdTimedMessage):
            message, identifier, timeout = call.message, call.identifier, call.timeout
        else:
            raise UnknownCallError(
                f"Cannot dispatch {type(call).__name__}", details={"call": repr(call)}
            )
        if not message:
            raise MissingMessageError("You need to specify at least a warning message")

        if self.ignore.mutes(message, identifier):
            self.registry.metrics.ignored += 1
            with decision_context("ignored", identifier=identifier):
                logger.debug("Ignored muted warning %r", message)
            return DispatchResult(state, False, None)

        seconds = resolve_timeout(timeout)
        if seconds is None:
            raise TimeoutSpecError("Timeout ill-specified", details={"timeout": timeout})

        timed = isinstance(call, (TimedMessage, IdTimedMessage))
        key = self._resolve_key(message, identifier, seconds if timed else math.inf)
        elapsed = self.timers.elapsed(key)
        entry = self.registry.get(key)
        if entry is None or seconds == 0 or elapsed > entry.deadline:
            self._fire(key, message, identifier)
            self.registry.record_fire(
                key, elapsed=elapsed, timeout=seconds, message=message, identifier=identifier
            )
            self.last = LastWarning(message, identifier, key)
            return DispatchResult(state, True, message)

        self.registry.metrics.suppressed += 1
        with decision_context("suppressed", key, identifier):
            logger.log(
                logging.INFO if self._diagnostic else logging.DEBUG,
                "Suppressed %s:%s (%.3fs elapsed, deadline %s)",
                key.origin,
                key,
                elapsed,
                entry.deadline,
            )
        return DispatchResult(state, False, entry.last_message)

    def command(self, cmd: Call) -> Any:
        """Apply a control command.

        ``Last`` returns a :class:`LastWarning` (or ``None``), ``Query`` a
        :class:`QueryResult`; every other command returns the
        :class:`WarningState` from before it was applied.
        """
        state = self.ignore.state()
        if isinstance(cmd, Off):
            self.ignore.off(cmd.target)
        elif isinstance(cmd, On):
            self.ignore.on(cmd.target)
        elif isinstance(cmd, Once):
            if cmd.target is None:
                self.default_timeout = math.inf
            else:
                self.overrides[str(cmd.target)] = math.inf
        elif isinstance(cmd, SetTimeout):
            seconds = resolve_timeout(cmd.seconds)
            if seconds is None:
                raise TimeoutSpecError("Timeout ill-specified", details={"timeout": cmd.seconds})
            self.default_timeout = seconds
        elif isinstance(cmd, Last):
            return self.last
        elif isinstance(cmd, Query):
            return self.query()
        else:
            raise UnknownCallError(
                f"Unknown command {type(cmd).__name__}", details={"call": repr(cmd)}
            )
        logger.debug("Applied %r", cmd)
        return state

    def query(self) -> QueryResult:
        return QueryResult(
            entries=self.registry.snapshot(),
            state=self.ignore.state(),
            default_timeout=self.default_timeout,
            overrides=dict(self.overrides),
            known=tuple(self.known.paths()),
            metrics=dict(self.registry.metrics.snapshot()),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------
    def _default_for(self, message: str, identifier: str | None) -> float:
        if identifier is not None and identifier in self.overrides:
            return self.overrides[identifier]
        return self.overrides.get(message, self.default_timeout)

    def _derive(self) -> tuple[Tuple[str, ...] | None, str | None]:
        chain, self.known, line_segment = derive_identity(
            self.frame_source.frames(),
            self.known,
            preamble_prefixes=self.config.preamble_prefixes,
            postamble_prefixes=self.config.postamble_prefixes,
        )
        return chain, line_segment

    def _resolve_key(self, message: str, identifier: str | None, seconds: float) -> IdentityKey:
        # ``seconds`` is the timeout passed with the call; windows set by the
        # ``timeout`` command keep call-site keys
        if identifier is not None:
            return IdentityKey.literal(f"{identifier}_{message}", origin=ORIGIN_EXPLICIT)
        if math.isinf(seconds):
            chain, line_segment = self._derive()
            if chain is not None:
                return IdentityKey.from_stack(chain, line_segment)
        return IdentityKey.literal(message, origin=ORIGIN_MESSAGE)

    def _clear(self) -> None:
        chain, _ = self._derive()
        if chain is None:
            # called outside any function: forget everything
            self.registry.clear()
            self.timers.clear()
            self.known = KnownIdentities()
            logger.debug("Cleared all warning identities")
            return
        self.registry.remove_subtree(chain)
        self.known = self.known.without_chain(chain)

    def _fire(self, key: IdentityKey, message: str, identifier: str | None) -> None:
        stacklevel = _internal_depth() + self.config.stacklevel
        with decision_context("fired", key, identifier):
            logger.debug("Firing %s:%s", key.origin, key)
            self.primitive(message, identifier, stacklevel=stacklevel)

    @staticmethod
    def _reentrant() -> bool:
        # frame 0 is _reentrant, frame 1 is the dispatch being checked
        frame = sys._getframe(2)
        try:
            while frame is not None:
                if frame.f_code is _DISPATCH_CODE:
                    return True
                frame = frame.f_back
        finally:
            del frame
        return False


_DISPATCH_CODE = Notifier.dispatch.__code__

# ----------------------------------------------------------------------
# Process default and context binding
# ----------------------------------------------------------------------
_default: Notifier | None = None
_current: contextvars.ContextVar[Notifier | None] = contextvars.ContextVar(
    "throttled_warnings_notifier", default=None
)


def get_notifier() -> Notifier:
    """Return the process-wide notifier, creating it from :meth:`NotifierConfig.load`."""
    global _default
    if _default is None:
        _default = Notifier(NotifierConfig.load())
    return _default


def reset_notifier() -> None:
    """Discard the process-wide notifier; the next use builds a fresh one."""
    global _default
    _default = None


def current_notifier() -> Notifier:
    """Return the notifier bound by :func:`notifier_context`, else the process default."""
    bound = _current.get()
    return bound if bound is not None else get_notifier()


@contextlib.contextmanager
def notifier_context(notifier: Notifier) -> Iterator[Notifier]:
    """Bind *notifier* as the current one for the enclosed block."""
    token = _current.set(notifier)
    try:
        yield notifier
    finally:
        _current.reset(token)


def warn(*args: Any, notifier: Notifier | None = None) -> Any:
    """Issue a throttled warning or a control command.

    Accepts the positional forms understood by
    :func:`~throttled_warnings.calls.parse_call`:

    - ``warn(msg)`` / ``warn(id, msg)``: once per call site (or per id),
      unless a default timeout was set with ``warn("timeout", s)``;
    - ``warn(msg, timeout)`` / ``warn(id, msg, timeout)``: at most once per
      ``timeout`` seconds;
    - ``warn("off" | "on" | "once" [, target])``, ``warn("timeout", s)``,
      ``warn("last")``, ``warn("query")``, ``warn("-clear")``;
    - ``warn(state)`` restores a state returned by an earlier call.
    """
    return (notifier if notifier is not None else current_notifier())(*args)


__all__ = [
    "DispatchResult",
    "LastWarning",
    "NotificationWarning",
    "Notifier",
    "QueryResult",
    "WarnPrimitive",
    "current_notifier",
    "emit_warning",
    "get_notifier",
    "notifier_context",
    "reset_notifier",
    "warn",
]
