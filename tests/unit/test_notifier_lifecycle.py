from __future__ import annotations

import pytest

import throttled_warnings
from throttled_warnings import (
    NotificationWarning,
    Notifier,
    current_notifier,
    get_notifier,
    notifier_context,
    reset_notifier,
    warn,
)


def test_process_default_is_a_singleton():
    assert get_notifier() is get_notifier()
    first = get_notifier()
    reset_notifier()
    assert get_notifier() is not first


def test_process_default_reads_environment(monkeypatch):
    monkeypatch.setenv("TW_WARNINGS", "off")
    assert get_notifier().ignore.muted_all is True


def test_context_binding_isolates_state(notifier, primitive):
    with notifier_context(notifier) as bound:
        assert current_notifier() is bound
        warn("inside", "bound notifier")
    assert current_notifier() is get_notifier()
    assert primitive.calls == [("bound notifier", "inside")]
    assert len(get_notifier().registry) == 0


def test_warn_accepts_explicit_notifier(notifier, primitive):
    warn("io", "explicit", 5, notifier=notifier)
    assert primitive.calls == [("explicit", "io")]


def test_warn_module_level_roundtrip():
    with pytest.warns(NotificationWarning, match="facade"):
        first = warn("facade:id", "through the facade")
    second = warn("facade:id", "through the facade")

    assert first.fired is True
    assert second.fired is False
    state, fired, message = second
    assert message == "through the facade"

    saved = warn("off")
    assert warn("facade:id", "another").fired is False
    warn(saved)
    assert get_notifier().ignore.muted_all is False


def test_loop_warns_once_per_line():
    notifier = Notifier()
    with pytest.warns(NotificationWarning) as record:
        for i in range(5):
            notifier(f"row {i} is malformed")
    assert len(record) == 1


def test_package_exports_version():
    assert throttled_warnings.__version__
