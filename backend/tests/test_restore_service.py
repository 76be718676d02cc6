"""Restore Engine 의 재구성/비교 동작을 검증합니다."""

import pytest

from versionable.exceptions import CorruptHistoryError, NotFoundError
from versionable.models.version import Version
from versionable.refs import ModelRef
from versionable.services.restore_service import RestoreEngine
from versionable.services.serializer import REMOVED, encode_contents
from versionable.services.version_store import VersionStore

POST = ModelRef(type="posts", id="7")


def _append(store, strategy, contents):
    version = Version(
        subject_type=POST.type,
        subject_id=POST.id,
        strategy=strategy,
        contents=encode_contents(contents),
    )
    store.append(version)
    return version


def test_reconstruct_each_version_of_mixed_history(db):
    store = VersionStore(db)
    v1 = _append(store, "full", {"title": "A", "content": "x"})
    v2 = _append(store, "diff", {"title": "B"})
    v3 = _append(store, "full", {"title": "C", "content": "x", "extends": {"k": 1}})
    v4 = _append(store, "diff", {"extends": REMOVED})
    db.commit()

    restorer = RestoreEngine(store)
    assert restorer.reconstruct(POST, v1.id) == {"title": "A", "content": "x"}
    assert restorer.reconstruct(POST, v2.id) == {"title": "B", "content": "x"}
    assert restorer.reconstruct(POST, v3.id) == {"title": "C", "content": "x", "extends": {"k": 1}}
    assert restorer.reconstruct(POST, v4.id) == {"title": "C", "content": "x"}
    assert restorer.reconstruct_latest(POST) == {"title": "C", "content": "x"}


def test_reconstruct_latest_without_history(db):
    assert RestoreEngine(VersionStore(db)).reconstruct_latest(POST) is None


def test_reconstruct_unknown_or_foreign_version(db):
    store = VersionStore(db)
    version = _append(store, "full", {"title": "A"})
    db.commit()

    restorer = RestoreEngine(store)
    with pytest.raises(NotFoundError):
        restorer.reconstruct(POST, version.id + 100)
    with pytest.raises(NotFoundError):
        restorer.reconstruct(ModelRef(type="posts", id="8"), version.id)


def test_reconstruct_fails_loudly_without_baseline(db):
    store = VersionStore(db)
    _append(store, "full", {"title": "A"})
    second = _append(store, "diff", {"title": "B"})
    db.commit()

    # 정책을 우회해 기준 스냅샷만 지운 손상된 이력
    db.delete(store.first_for(POST))
    db.commit()

    with pytest.raises(CorruptHistoryError):
        RestoreEngine(store).reconstruct(POST, second.id)


def test_diff_against_previous_and_explicit_version(db):
    store = VersionStore(db)
    v1 = _append(store, "full", {"title": "A", "content": "x"})
    v2 = _append(store, "diff", {"title": "B"})
    v3 = _append(store, "diff", {"content": "y"})
    db.commit()

    restorer = RestoreEngine(store)
    result = restorer.diff(POST, v3.id)
    assert result["against_version_id"] == v2.id
    assert result["changes"] == {"content": {"old": "x", "new": "y"}}

    result = restorer.diff(POST, v3.id, against_id=v1.id)
    assert result["changes"] == {
        "title": {"old": "A", "new": "B"},
        "content": {"old": "x", "new": "y"},
    }

    first = restorer.diff(POST, v1.id)
    assert first["against_version_id"] is None
    assert set(first["changes"]) == {"title", "content"}
