from __future__ import annotations

import math

import pytest

from throttled_warnings import Frame, IdentityKey, LastWarning, QueryResult, WarningState
from throttled_warnings.utils.exceptions import TimeoutSpecError


def test_off_and_on_return_prior_state(notifier):
    assert notifier("off") == WarningState()
    assert notifier("on") == WarningState(True, frozenset())
    assert notifier.ignore.state() == WarningState()


def test_on_without_target_clears_every_ignore(notifier):
    notifier("off", "a")
    notifier("off", "b")
    notifier("on")
    assert notifier.ignore.state() == WarningState()


def test_timeout_sets_default_window(notifier, primitive, clock):
    notifier("timeout", 5)
    notifier("polling")
    clock.advance(3)
    notifier("polling")
    clock.advance(3)
    notifier("polling")

    assert len(primitive.calls) == 2
    assert notifier.last.key == IdentityKey("stack", ("outer", "inner", "line10"))


def test_timeout_default_keeps_call_sites_independent(notifier, primitive, frames):
    notifier("timeout", 30)
    notifier("same text")
    frames.stack[0] = Frame("inner", "pipeline.py", 12)
    notifier("same text")

    assert primitive.calls == [("same text", None), ("same text", None)]
    assert {str(key) for key in notifier.registry} == {"outer.inner.line10", "outer.inner.line12"}
    assert all(entry.timeout == 30 for entry in notifier.registry.snapshot().values())


def test_timeout_accepts_numeric_strings(notifier):
    notifier("timeout", "60")
    assert notifier.default_timeout == 60


def test_timeout_rejects_garbage(notifier):
    with pytest.raises(TimeoutSpecError):
        notifier("timeout", "soon")


def test_once_restores_infinite_default(notifier, primitive, clock):
    notifier("timeout", 1)
    notifier("once")
    notifier("sticky")
    clock.advance(100)
    notifier("sticky")

    assert math.isinf(notifier.default_timeout)
    assert len(primitive.calls) == 1


def test_once_scoped_to_identifier(notifier, primitive, clock):
    notifier("timeout", 5)
    notifier("once", "idA")

    notifier("idA", "pinned")
    notifier("idB", "repeating")
    clock.advance(10)
    notifier("idA", "pinned")
    notifier("idB", "repeating")

    assert primitive.calls == [
        ("pinned", "idA"),
        ("repeating", "idB"),
        ("repeating", "idB"),
    ]
    assert notifier.overrides == {"idA": math.inf}


def test_last_reports_most_recent_fire(notifier):
    assert notifier("last") is None
    notifier("first")
    notifier("io", "second", 5)
    notifier("io", "second", 5)

    last = notifier("last")
    assert isinstance(last, LastWarning)
    assert (last.message, last.identifier) == ("second", "io")


def test_query_summarises_registry(notifier):
    notifier("io", "disk full", 30)
    notifier("looping")
    notifier("off", "io")

    result = notifier("query")

    assert isinstance(result, QueryResult)
    summary = result.as_dict()
    assert summary["explicit:io_disk_full"]["state"] == "off"
    assert summary["explicit:io_disk_full"]["timeout"] == 30
    assert summary["stack:outer.inner.line10"]["once"] is True
    assert summary["stack:outer.inner.line10"]["state"] == "on"
    assert ("outer", "inner") in result.known
    assert result.metrics["fired"] == 2


def test_query_is_a_copy(notifier):
    result = notifier("query")
    notifier("later")
    assert result.entries == {}
