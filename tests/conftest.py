"""Shared pytest fixtures for throttled_warnings tests."""

from __future__ import annotations

import pytest

from throttled_warnings import Frame, ManualClock, Notifier, StaticFrameSource, reset_notifier


class RecordingPrimitive:
    """Warn primitive that records calls instead of emitting warnings."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []

    def __call__(self, message, identifier=None, *, stacklevel=2):
        self.calls.append((message, identifier))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep env vars, pyproject lookups and the process default out of each test."""
    monkeypatch.delenv("TW_WARNINGS", raising=False)
    monkeypatch.delenv("TW_DIAGNOSTIC_MODE", raising=False)
    monkeypatch.chdir(tmp_path)
    reset_notifier()
    yield
    reset_notifier()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def frames():
    """Synthetic stack: ``outer`` (line 3) calls ``inner``, which warns on line 10."""
    return StaticFrameSource(
        [
            Frame("inner", "pipeline.py", 10),
            Frame("outer", "pipeline.py", 3),
            Frame("<module>", "pipeline.py", 1),
        ]
    )


@pytest.fixture
def primitive():
    return RecordingPrimitive()


@pytest.fixture
def notifier(clock, frames, primitive):
    """Fresh notifier per test with injected clock, stack and primitive."""
    return Notifier(clock=clock, frame_source=frames, primitive=primitive)
