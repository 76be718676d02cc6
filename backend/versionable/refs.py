"""subject/actor 를 (type, id) 쌍으로 가리키는 다형 참조 타입입니다."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import inspect

from versionable.exceptions import ConfigurationError

# 복합 기본키는 하나의 문자열 id 로 합쳐 저장한다.
KEY_SEPARATOR = ":"


@dataclass(frozen=True)
class ModelRef:
    type: str
    id: str

    def __post_init__(self):
        # int/UUID 키를 같은 컬럼에 저장하기 위해 문자열로 정규화
        object.__setattr__(self, "id", str(self.id))

    @classmethod
    def for_instance(cls, obj, type_name: Optional[str] = None) -> "ModelRef":
        identity = inspect(obj).identity
        if identity is None:
            raise ConfigurationError(
                "영속화되지 않은 객체는 참조할 수 없습니다.",
                {"model": type(obj).__name__},
            )
        key = KEY_SEPARATOR.join(str(part) for part in identity)
        return cls(type=type_name or obj.__tablename__, id=key)

    @classmethod
    def optional(cls, type_: Optional[str], id_: Optional[str]) -> Optional["ModelRef"]:
        if type_ is None or id_ is None:
            return None
        return cls(type=type_, id=id_)

    def key_parts(self, size: int = 1) -> list:
        # 마지막 컬럼 값에는 구분자가 들어 있어도 된다.
        return self.id.split(KEY_SEPARATOR, size - 1)

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"
