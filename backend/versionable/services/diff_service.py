"""속성 맵 사이의 변경분(delta) 계산, 적용, 버전 체인 재생을 담당하는 diff 엔진입니다."""

import copy
import difflib
import json
from typing import Any, Dict, Iterable, Mapping, Optional

from versionable.exceptions import CorruptHistoryError, NotFoundError
from versionable.registry import VersionStrategy
from versionable.services.serializer import REMOVED, decode_contents, values_equal


def compute_delta(previous: Mapping[str, Any], current: Mapping[str, Any]) -> Dict[str, Any]:
    delta: Dict[str, Any] = {}
    for name, value in current.items():
        if name not in previous or not values_equal(previous[name], value):
            delta[name] = value
    for name in previous:
        if name not in current:
            delta[name] = REMOVED
    return delta


def apply_delta(base: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for name, value in delta.items():
        if value is REMOVED:
            result.pop(name, None)
        else:
            result[name] = copy.deepcopy(value)
    return result


def _is_full(version) -> bool:
    return version.strategy == VersionStrategy.FULL.value


def replay(versions: Iterable, until=None) -> Dict[str, Any]:
    """시간순 버전 시퀀스를 재생해 ``until`` 시점(없으면 마지막)의 전체 속성 맵을 만든다.

    FULL 버전을 만날 때마다 상태를 새로 시작한다. 기준 스냅샷 없이 시작하는 delta 는
    최초 버전(version_no == 1)일 때만 빈 맵 기준으로 인정한다.
    """
    state: Optional[Dict[str, Any]] = None
    last = None
    for version in versions:
        contents = decode_contents(version.contents, removals=not _is_full(version))
        if _is_full(version):
            state = apply_delta({}, contents)
        elif state is not None:
            state = apply_delta(state, contents)
        elif version.version_no == 1:
            state = apply_delta({}, contents)
        last = version
        if until is not None and (version is until or version.id == until.id):
            break
    else:
        if until is not None:
            raise NotFoundError("재생 대상 버전이 이력에 없습니다.", {"version_id": until.id})

    if last is None:
        return {}
    if state is None:
        raise CorruptHistoryError(
            "FULL 스냅샷 기준점에 도달할 수 없습니다.",
            {"subject": f"{last.subject_type}#{last.subject_id}", "version_id": last.id},
        )
    return state


def compare(old: Mapping[str, Any], new: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    changes: Dict[str, Dict[str, Any]] = {}
    names = list(old) + [name for name in new if name not in old]
    for name in names:
        before = old.get(name)
        after = new.get(name)
        if name in old and name in new and values_equal(before, after):
            continue
        changes[name] = {"old": before, "new": after}
    return changes


def _as_lines(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return value.splitlines()
    return json.dumps(value, ensure_ascii=False, indent=2, sort_keys=True).splitlines()


def render_text(old: Mapping[str, Any], new: Mapping[str, Any]) -> str:
    chunks = []
    for name, change in compare(old, new).items():
        lines = difflib.unified_diff(
            _as_lines(change["old"]),
            _as_lines(change["new"]),
            fromfile=f"{name} (old)",
            tofile=f"{name} (new)",
            lineterm="",
        )
        chunks.append("\n".join(lines))
    return "\n".join(chunk for chunk in chunks if chunk)
