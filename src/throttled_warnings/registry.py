"""Suppression registry, ignore set and mute-state snapshots.

The registry maps each :class:`~throttled_warnings.identity.IdentityKey` to
the bookkeeping needed to decide whether the next occurrence may fire: the
elapsed-time deadline and the last message shown. The ignore set holds the
global mute flag and the individually muted messages or identifiers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, Mapping, Sequence

from .identity import ORIGIN_STACK, IdentityKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """Suppression state of one identity.

    ``deadline`` is measured on the identity's own timer, i.e. in seconds
    since it was first seen; the identity may fire again once its elapsed
    time exceeds the deadline.
    """

    deadline: float
    last_message: str
    identifier: str | None = None
    timeout: float = math.inf
    fired_count: int = 1

    @property
    def once(self) -> bool:
        return math.isinf(self.timeout)


@dataclass(slots=True)
class RegistryMetrics:
    """Counters aggregated by :class:`SuppressionRegistry`."""

    fired: int = 0
    suppressed: int = 0
    ignored: int = 0
    clears: int = 0
    resets: int = 0

    def snapshot(self) -> Mapping[str, int]:
        """Return a dictionary suitable for logging or JSON serialisation."""
        return {
            "fired": self.fired,
            "suppressed": self.suppressed,
            "ignored": self.ignored,
            "clears": self.clears,
            "resets": self.resets,
        }


class SuppressionRegistry:
    """Flat mapping from identity keys to :class:`RegistryEntry`."""

    def __init__(self) -> None:
        self._entries: Dict[IdentityKey, RegistryEntry] = {}
        self.metrics = RegistryMetrics()

    def get(self, key: IdentityKey) -> RegistryEntry | None:
        return self._entries.get(key)

    def record_fire(
        self,
        key: IdentityKey,
        *,
        elapsed: float,
        timeout: float,
        message: str,
        identifier: str | None,
    ) -> RegistryEntry:
        """Create or re-arm the entry for *key* after it fired."""
        previous = self._entries.get(key)
        count = previous.fired_count + 1 if previous is not None else 1
        entry = RegistryEntry(
            deadline=elapsed + timeout,
            last_message=message,
            identifier=identifier,
            timeout=timeout,
            fired_count=count,
        )
        self._entries[key] = entry
        self.metrics.fired += 1
        return entry

    def remove_subtree(self, chain: Sequence[str]) -> int:
        """Remove every stack-derived entry whose path starts with *chain*."""
        doomed = [
            key for key in self._entries if key.origin == ORIGIN_STACK and key.startswith(chain)
        ]
        for key in doomed:
            del self._entries[key]
        self.metrics.clears += 1
        logger.debug("Cleared %d entries under %s", len(doomed), ".".join(chain))
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        self.metrics.resets += 1

    def snapshot(self) -> Dict[IdentityKey, RegistryEntry]:
        """Return a shallow copy of the entries; entries themselves are immutable."""
        return dict(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[IdentityKey]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class WarningState:
    """Snapshot of the mute state, returned by every call and restorable verbatim."""

    muted_all: bool = False
    ignored: FrozenSet[str] = frozenset()


@dataclass
class IgnoreSet:
    """Global mute flag plus individually muted messages or identifiers."""

    muted_all: bool = False
    ignored: set = field(default_factory=set)

    def mutes(self, message: str, identifier: str | None = None) -> bool:
        if self.muted_all or message in self.ignored:
            return True
        return identifier is not None and identifier in self.ignored

    def off(self, target: str | None = None) -> None:
        if target is None:
            self.muted_all = True
        else:
            self.ignored.add(target)

    def on(self, target: str | None = None) -> None:
        if target is None:
            self.muted_all = False
            self.ignored.clear()
        else:
            self.ignored.discard(target)

    def state(self) -> WarningState:
        return WarningState(self.muted_all, frozenset(self.ignored))

    def restore(self, state: WarningState) -> None:
        self.muted_all = state.muted_all
        self.ignored = set(state.ignored)
