"""Monotonic clocks and the per-identity timer store."""

from __future__ import annotations

from dataclasses import dataclass
from time import monotonic
from typing import Dict, Hashable, Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Return the current reading in seconds."""


class MonotonicClock:
    """Default clock backed by :func:`time.monotonic`."""

    def now(self) -> float:
        return monotonic()


@dataclass
class ManualClock:
    """Clock that only moves when told to."""

    current: float = 0.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class TimerStore:
    """Maps identity keys to the clock reading at which they were first seen.

    Entries are created lazily and never removed individually: the start
    reference survives timeout changes and subtree clears, and only
    :meth:`clear` drops it.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self._starts: Dict[Hashable, float] = {}

    def ensure(self, key: Hashable) -> float:
        """Return the start reference for *key*, recording it on first sight."""
        start = self._starts.get(key)
        if start is None:
            start = self._starts[key] = self.clock.now()
        return start

    def elapsed(self, key: Hashable) -> float:
        """Return seconds since *key* was first seen, starting its timer if needed."""
        return self.clock.now() - self.ensure(key)

    def clear(self) -> None:
        self._starts.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._starts

    def __len__(self) -> int:
        return len(self._starts)
