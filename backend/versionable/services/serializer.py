"""subject 의 버전 대상 필드를 비교/저장 가능한 정규화 JSON 값으로 변환합니다."""

import json
import math
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Mapping
from uuid import UUID

from versionable.exceptions import CorruptHistoryError, SerializationError

REMOVED_MARKER_KEY = "__versionable_removed__"
ESCAPED_KEY = "__versionable_escaped__"


class _Removed:
    """delta 에서 '필드가 사라짐'을 표시하는 싱글턴."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REMOVED"

    def __reduce__(self):
        return "REMOVED"


REMOVED = _Removed()


def canonicalize(value: Any, field: str | None = None) -> Any:
    if isinstance(value, Enum):
        return canonicalize(value.value, field)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return str(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError("유한하지 않은 실수는 저장할 수 없습니다.", {"field": field, "value": value})
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise SerializationError("유한하지 않은 Decimal 은 저장할 수 없습니다.", {"field": field, "value": value})
        return str(value)
    # datetime 은 date 의 하위 클래스이므로 함께 처리된다.
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Mapping):
        items = {str(k): canonicalize(v, field) for k, v in value.items()}
        return {k: items[k] for k in sorted(items)}
    if isinstance(value, (set, frozenset)):
        return sorted((canonicalize(v, field) for v in value), key=_dump)
    if isinstance(value, (list, tuple)):
        return [canonicalize(v, field) for v in value]
    raise SerializationError(
        "JSON 으로 정규화할 수 없는 값입니다.",
        {"field": field, "type": type(value).__name__},
    )


def serialize_attributes(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: canonicalize(value, name) for name, value in raw.items()}


def extract(subject: Any, fields: Iterable[str]) -> Dict[str, Any]:
    raw = {}
    for name in fields:
        try:
            raw[name] = getattr(subject, name)
        except AttributeError as exc:
            raise SerializationError(
                "subject 에서 필드를 읽을 수 없습니다.",
                {"field": name, "model": type(subject).__name__},
            ) from exc
    return serialize_attributes(raw)


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def values_equal(left: Any, right: Any) -> bool:
    if left is REMOVED or right is REMOVED:
        return left is right
    return _dump(left) == _dump(right)


def _encode_value(value: Any) -> Any:
    if value is REMOVED:
        return {REMOVED_MARKER_KEY: True}
    # 예약 키를 가진 사용자 dict 는 한 겹 감싸서 삭제 표식과 구분한다.
    if isinstance(value, dict) and (REMOVED_MARKER_KEY in value or ESCAPED_KEY in value):
        return {ESCAPED_KEY: value}
    return value


def encode_contents(mapping: Mapping[str, Any]) -> str:
    payload = {name: _encode_value(value) for name, value in mapping.items()}
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError("contents 를 JSON 으로 인코딩할 수 없습니다.", {"error": str(exc)}) from exc


def _decode_value(value: Any, removals: bool) -> Any:
    if not isinstance(value, dict) or len(value) != 1:
        return value
    if ESCAPED_KEY in value:
        return value[ESCAPED_KEY]
    if removals and value.get(REMOVED_MARKER_KEY) is True:
        return REMOVED
    return value


def decode_contents(text: str | None, removals: bool = True) -> Dict[str, Any]:
    """저장된 contents 를 속성 맵으로 되돌린다. ``removals=False`` 면 삭제 표식을 해석하지 않는다(FULL 행)."""
    try:
        payload = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise CorruptHistoryError("저장된 contents 를 해석할 수 없습니다.", {"error": str(exc)}) from exc
    if not isinstance(payload, dict):
        raise CorruptHistoryError("저장된 contents 가 속성 맵이 아닙니다.", {"type": type(payload).__name__})
    return {name: _decode_value(value, removals) for name, value in payload.items()}
