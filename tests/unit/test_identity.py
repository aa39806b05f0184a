from __future__ import annotations

import os
from pathlib import Path

import pytest

from throttled_warnings.identity import (
    Frame,
    IdentityKey,
    InspectFrameSource,
    KnownIdentities,
    derive_identity,
    is_within,
    sanitize,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("load_rows", "load_rows"),
        ("<lambda>", "lambda"),
        ("<listcomp>", "listcomp"),
        ("disk: 90% full!", "disk_90_full"),
        ("3d_plot", "x3d_plot"),
        ("!!!", "x"),
    ],
)
def test_sanitize_produces_identifier_segments(raw, expected):
    assert sanitize(raw) == expected
    assert sanitize(raw).isidentifier()


def test_sanitize_keeps_long_names_distinct():
    prefix = "Could not read calibration file because the path does not exist: /data/"
    first, second = sanitize(prefix + "a.csv"), sanitize(prefix + "b.csv")

    assert first != second
    assert first.endswith("a_csv")


def test_is_within_requires_a_path_boundary():
    root = os.path.join(os.sep, "site-packages", "throttled_warnings")

    assert is_within(os.path.join(root, "dispatch.py"), (root,))
    assert is_within(root, (root,))
    assert not is_within(root + "_contrib" + os.sep + "hooks.py", (root,))


def test_derive_builds_chain_outermost_first():
    frames = [Frame("inner", "m.py", 10), Frame("middle", "m.py", 20), Frame("outer", "m.py", 30)]
    chain, known, line = derive_identity(frames, KnownIdentities())

    assert chain == ("outer", "middle", "inner")
    assert line == "line10"
    assert ("outer", "middle", "inner") in known
    assert ("outer", "middle") in known


def test_derive_drops_module_frames_at_the_outer_end():
    frames = [Frame("inner", "m.py", 10), Frame("<module>", "m.py", 1)]
    chain, _, _ = derive_identity(frames, KnownIdentities())
    assert chain == ("inner",)


def test_derive_returns_sentinel_without_enclosing_function():
    known = KnownIdentities()
    chain, same, line = derive_identity([Frame("<module>", "m.py", 1)], known)
    assert chain is None and line is None
    assert same is known

    assert derive_identity([], known)[0] is None


def test_derive_skips_preamble_frames():
    frames = [
        Frame("_preamble_check", "m.py", 2),
        Frame("_preamble_args", "m.py", 4),
        Frame("compute", "m.py", 40),
        Frame("main", "m.py", 80),
    ]
    chain, _, line = derive_identity(frames, KnownIdentities())
    assert chain == ("main", "compute")
    assert line == "line40"


def test_derive_stops_at_postamble_frame():
    frames = [
        Frame("inner", "m.py", 10),
        Frame("_postamble_save", "m.py", 20),
        Frame("middle", "m.py", 30),
        Frame("outer", "m.py", 40),
    ]
    chain, _, line = derive_identity(frames, KnownIdentities())
    assert chain == ("outer", "middle")
    assert line == "line10"


def test_derive_honours_custom_prefixes():
    frames = [Frame("wrap_emit", "m.py", 1), Frame("job", "m.py", 7)]
    chain, _, line = derive_identity(frames, KnownIdentities(), preamble_prefixes=("wrap_",))
    assert chain == ("job",)
    assert line == "line7"


def test_derive_is_stable_and_leaves_input_untouched():
    frames = [Frame("inner", "m.py", 10), Frame("outer", "m.py", 30)]
    original = KnownIdentities()
    first = derive_identity(frames, original)
    second = derive_identity(frames, first[1])

    assert first[0] == second[0]
    assert second[1] is first[1]
    assert len(original) == 0


def test_known_identities_without_chain_prunes_subtree():
    known = KnownIdentities().with_chain(("a", "b", "c")).with_chain(("a", "d"))
    pruned = known.without_chain(("a", "b"))

    assert ("a", "d") in pruned
    assert ("a", "b") not in pruned
    assert ("a", "b", "c") in known
    assert sorted(pruned.paths()) == [("a",), ("a", "d")]


def test_identity_key_dotted_form_and_prefix():
    key = IdentityKey.from_stack(("outer", "inner"), "line10")
    assert str(key) == "outer.inner.line10"
    assert key.startswith(("outer",))
    assert not key.startswith(("inner",))
    assert IdentityKey.literal("a b", origin="message") != IdentityKey.literal("a b", origin="explicit")


def test_inspect_frame_source_reports_this_function_first():
    frames = InspectFrameSource().frames()
    assert frames[0].function == "test_inspect_frame_source_reports_this_function_first"
    assert Path(frames[0].file).name == Path(__file__).name


def test_inspect_frame_source_excludes_internal_dirs():
    source = InspectFrameSource(internal_dirs=(str(__file__),))
    names = [frame.function for frame in source.frames()]
    assert "test_inspect_frame_source_excludes_internal_dirs" not in names


def test_inspect_frame_source_matches_whole_path_components():
    # a bare string prefix of this file is not a directory containing it
    sibling = InspectFrameSource(internal_dirs=(str(__file__)[: -len(".py")],))
    names = [frame.function for frame in sibling.frames()]
    assert "test_inspect_frame_source_matches_whole_path_components" in names
