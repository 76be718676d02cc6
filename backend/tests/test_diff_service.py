"""Diff 엔진의 delta 계산/적용/재생 규칙을 검증합니다."""

from types import SimpleNamespace

import pytest

from versionable.exceptions import CorruptHistoryError, NotFoundError
from versionable.services.diff_service import apply_delta, compare, compute_delta, render_text, replay
from versionable.services.serializer import REMOVED, encode_contents


def _version(id_, no, strategy, contents):
    return SimpleNamespace(
        id=id_,
        version_no=no,
        strategy=strategy,
        contents=encode_contents(contents),
        subject_type="posts",
        subject_id="1",
    )


def test_compute_delta_records_changes_additions_and_removals():
    previous = {"title": "A", "content": "x", "old": 1}
    current = {"title": "B", "content": "x", "new": [1]}
    delta = compute_delta(previous, current)
    assert delta == {"title": "B", "new": [1], "old": REMOVED}


def test_compute_delta_empty_for_identical_state():
    state = {"title": "A", "extends": {"a": 1}}
    assert compute_delta(state, dict(state)) == {}


def test_compute_delta_uses_deep_equality():
    assert compute_delta({"extends": {"a": [1, 2]}}, {"extends": {"a": [1, 2]}}) == {}
    assert compute_delta({"extends": {"a": [1, 2]}}, {"extends": {"a": [2, 1]}}) == {"extends": {"a": [2, 1]}}


def test_apply_delta_overwrites_and_removes_without_mutating_base():
    base = {"title": "A", "content": "x"}
    result = apply_delta(base, {"title": "B", "content": REMOVED})
    assert result == {"title": "B"}
    assert base == {"title": "A", "content": "x"}


def test_delta_sequence_replays_every_state():
    states = [
        {"title": "A", "content": "x"},
        {"title": "B", "content": "x"},
        {"title": "B", "content": "y", "extends": {"k": 1}},
        {"title": "C", "extends": {"k": 2}},
    ]
    rebuilt = dict(states[0])
    for previous, current in zip(states, states[1:]):
        rebuilt = apply_delta(rebuilt, compute_delta(previous, current))
        assert rebuilt == current


def test_replay_restarts_at_full_versions():
    versions = [
        _version(1, 1, "full", {"title": "A", "content": "x"}),
        _version(2, 2, "diff", {"title": "B"}),
        _version(3, 3, "full", {"title": "C", "content": "z"}),
        _version(4, 4, "diff", {"content": REMOVED}),
    ]
    assert replay(versions, until=versions[1]) == {"title": "B", "content": "x"}
    assert replay(versions, until=versions[2]) == {"title": "C", "content": "z"}
    assert replay(versions) == {"title": "C"}


def test_replay_treats_first_delta_as_implicit_baseline():
    versions = [_version(1, 1, "diff", {"title": "A"}), _version(2, 2, "diff", {"content": "x"})]
    assert replay(versions) == {"title": "A", "content": "x"}


def test_replay_without_reachable_baseline_is_corrupt():
    versions = [_version(5, 5, "diff", {"title": "B"}), _version(6, 6, "diff", {"content": "y"})]
    with pytest.raises(CorruptHistoryError):
        replay(versions)


def test_replay_recovers_after_later_full_version():
    versions = [_version(5, 5, "diff", {"title": "B"}), _version(6, 6, "full", {"title": "C"})]
    assert replay(versions) == {"title": "C"}


def test_replay_raises_when_target_missing():
    versions = [_version(1, 1, "full", {"title": "A"})]
    with pytest.raises(NotFoundError):
        replay(versions, until=SimpleNamespace(id=99))


def test_compare_and_render_text():
    old = {"title": "A", "content": "line1\nline2"}
    new = {"title": "A", "content": "line1\nline3", "extends": {"k": 1}}
    changes = compare(old, new)
    assert set(changes) == {"content", "extends"}
    assert changes["extends"] == {"old": None, "new": {"k": 1}}
    text = render_text(old, new)
    assert "-line2" in text
    assert "+line3" in text
    assert "title" not in text
