"""Identity derivation for throttled warnings.

A warning without an explicit identifier is keyed by *where* it was issued:
the chain of calling functions from the outermost one inwards, plus the line
that issued it. Two warnings with the same text issued from different lines
therefore get independent suppression state, while a warning issued from a
loop keeps hitting the same key.

Call-stack introspection is abstracted behind :class:`FrameSource` so tests
can supply synthetic stacks.
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Protocol, Sequence, Tuple

ORIGIN_STACK = "stack"
ORIGIN_EXPLICIT = "explicit"
ORIGIN_MESSAGE = "message"

MODULE_FRAME = "<module>"

_NON_WORD = re.compile(r"\W+")
PACKAGE_DIR = str(Path(__file__).resolve().parent)


def sanitize(raw: str) -> str:
    """Turn *raw* into a legal identifier segment.

    Runs of non-word characters collapse to ``_``, surrounding underscores
    are stripped, and a leading digit (or an empty result) gets an ``x``
    prefix. The full length is kept.

    >>> sanitize("<lambda>")
    'lambda'
    >>> sanitize("3 apples, 2 pears")
    'x3_apples_2_pears'
    """
    name = _NON_WORD.sub("_", str(raw)).strip("_")
    if not name or name[0].isdigit():
        name = "x" + name
    return name


def is_within(filename: str, roots: Iterable[str]) -> bool:
    """Return whether *filename* is one of *roots* or lies beneath one of them."""
    for root in roots:
        if filename == root or filename.startswith(root.rstrip(os.sep) + os.sep):
            return True
    return False


@dataclass(frozen=True)
class Frame:
    """One active call frame as reported by a :class:`FrameSource`."""

    function: str
    file: str = ""
    line: int = 0


@dataclass(frozen=True)
class IdentityKey:
    """Hashable identity of a warning, namespaced by how it was produced.

    ``origin`` keeps stack-derived keys, explicit ``id_message`` keys and
    plain message keys disjoint even when their dotted forms coincide.
    """

    origin: str
    path: Tuple[str, ...]

    def __str__(self) -> str:
        return ".".join(self.path)

    @classmethod
    def literal(cls, text: str, *, origin: str) -> "IdentityKey":
        return cls(origin, (sanitize(text),))

    @classmethod
    def from_stack(cls, chain: Sequence[str], line_segment: str) -> "IdentityKey":
        return cls(ORIGIN_STACK, (*chain, line_segment))

    def startswith(self, prefix: Sequence[str]) -> bool:
        return self.path[: len(prefix)] == tuple(prefix)


@dataclass(frozen=True)
class KnownIdentities:
    """Immutable trie of the function chains seen so far.

    Each node maps a sanitized function name to its child node. Updates
    return a new trie and leave the receiver untouched.
    """

    children: Mapping[str, "KnownIdentities"] = field(default_factory=dict)

    def __contains__(self, chain: object) -> bool:
        if not isinstance(chain, tuple):
            return False
        node = self
        for segment in chain:
            child = node.children.get(segment)
            if child is None:
                return False
            node = child
        return True

    def __len__(self) -> int:
        return sum(1 + len(child) for child in self.children.values())

    def with_chain(self, chain: Sequence[str]) -> "KnownIdentities":
        """Return a trie that also holds every prefix of *chain*."""
        if not chain:
            return self
        head, rest = chain[0], chain[1:]
        child = self.children.get(head, KnownIdentities())
        updated = child.with_chain(rest)
        if head in self.children and updated is child:
            return self
        return KnownIdentities({**self.children, head: updated})

    def without_chain(self, chain: Sequence[str]) -> "KnownIdentities":
        """Return a trie with the subtree rooted at *chain* removed."""
        if not chain or chain[0] not in self.children:
            return self
        head, rest = chain[0], chain[1:]
        children = dict(self.children)
        if rest:
            children[head] = children[head].without_chain(rest)
        else:
            del children[head]
        return KnownIdentities(children)

    def paths(self) -> Iterable[Tuple[str, ...]]:
        """Yield every chain stored in the trie, parents before children."""
        for name, child in self.children.items():
            yield (name,)
            for sub in child.paths():
                yield (name, *sub)


def derive_identity(
    frames: Sequence[Frame],
    known: KnownIdentities,
    *,
    preamble_prefixes: Sequence[str] = ("_preamble",),
    postamble_prefixes: Sequence[str] = ("_postamble",),
) -> tuple[Tuple[str, ...] | None, KnownIdentities, str | None]:
    """Derive the function chain and line segment identifying a call site.

    Parameters
    ----------
    frames : Sequence[Frame]
        Caller frames, innermost first, with library frames already removed.
    known : KnownIdentities
        Chains seen so far.
    preamble_prefixes, postamble_prefixes : Sequence[str]
        Leading (innermost) frames whose name starts with a preamble prefix
        are skipped. Walking inward from the outermost function stops at the
        first frame whose name starts with a postamble prefix.

    Returns
    -------
    tuple
        ``(chain, updated_known, line_segment)``; ``chain`` and
        ``line_segment`` are ``None`` when the stack holds no enclosing
        function, in which case ``known`` is returned unchanged.
    """
    relevant = list(frames)
    while relevant and relevant[-1].function == MODULE_FRAME:
        relevant.pop()

    start = 0
    while start < len(relevant) and relevant[start].function.startswith(tuple(preamble_prefixes)):
        start += 1
    if start >= len(relevant):
        return None, known, None

    chain = [sanitize(relevant[-1].function)]
    for frame in reversed(relevant[start:-1]):
        if frame.function.startswith(tuple(postamble_prefixes)):
            break
        chain.append(sanitize(frame.function))

    line_segment = f"line{relevant[start].line}"
    return tuple(chain), known.with_chain(chain), line_segment


class FrameSource(Protocol):
    """Capability yielding the active call frames, innermost first."""

    def frames(self) -> Sequence[Frame]:
        """Return the caller frames with library-internal frames removed."""


class InspectFrameSource:
    """Frame source walking the live interpreter stack.

    Frames whose code lives inside this package are dropped, so the first
    frame returned is the one that called into the library.
    """

    def __init__(self, internal_dirs: Iterable[str] = (PACKAGE_DIR,)) -> None:
        self._internal_dirs = tuple(internal_dirs)

    def _is_internal(self, filename: str) -> bool:
        return is_within(filename, self._internal_dirs)

    def frames(self) -> Sequence[Frame]:
        result = []
        frame = sys._getframe(1)
        try:
            while frame is not None:
                code = frame.f_code
                if not self._is_internal(code.co_filename):
                    result.append(Frame(code.co_name, code.co_filename, frame.f_lineno))
                frame = frame.f_back
        finally:
            # Prevent reference cycles
            del frame
        return result


class StaticFrameSource:
    """Frame source returning a fixed, settable stack."""

    def __init__(self, frames: Iterable[Frame] = ()) -> None:
        self.stack = list(frames)

    def frames(self) -> Sequence[Frame]:
        return list(self.stack)


__all__ = [
    "Frame",
    "FrameSource",
    "IdentityKey",
    "InspectFrameSource",
    "KnownIdentities",
    "StaticFrameSource",
    "derive_identity",
    "is_within",
    "sanitize",
]
