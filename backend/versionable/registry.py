"""subject 타입별 버전 관리 옵션(전략, 보관 개수, 대상 필드)을 등록/조회합니다."""

from enum import Enum
from typing import Dict, List, Optional, Type

from pydantic import BaseModel, Field

from versionable.config import settings
from versionable.exceptions import ConfigurationError
from versionable.models.version import ID_SCHEME


class VersionStrategy(str, Enum):
    FULL = "full"
    DIFF = "diff"


class IdScheme(str, Enum):
    SEQUENTIAL = "sequential"
    UUID = "uuid"


def _default_strategy() -> VersionStrategy:
    return VersionStrategy(settings.VERSIONABLE_STRATEGY.lower())


class VersionOptions(BaseModel):
    # 비어 있으면 기본키/타임스탬프를 제외한 모든 컬럼이 대상
    versionable: List[str] = Field(default_factory=list)
    dont_versionable: List[str] = Field(default_factory=list)
    strategy: VersionStrategy = Field(default_factory=_default_strategy)
    keep_versions: Optional[int] = Field(default=None, ge=0)
    id_scheme: Optional[IdScheme] = None
    skip_unchanged: bool = True
    force_delete_version: bool = False
    soft_delete_field: Optional[str] = "deleted_at"
    version_on_restore: bool = False
    type_name: Optional[str] = None

    def retention(self) -> int:
        if self.keep_versions is None:
            return settings.VERSIONABLE_KEEP_VERSIONS
        return self.keep_versions


class VersionRegistry:
    def __init__(self):
        self._options: Dict[type, VersionOptions] = {}
        self._models: Dict[str, type] = {}

    def register(self, model: Type, options: Optional[VersionOptions] = None) -> VersionOptions:
        options = options or VersionOptions()
        if options.id_scheme is not None and options.id_scheme.value != ID_SCHEME:
            raise ConfigurationError(
                "versions 테이블의 id 방식과 타입 설정이 일치하지 않습니다.",
                {"model": model.__name__, "configured": options.id_scheme.value, "table": ID_SCHEME},
            )
        type_name = options.type_name or model.__tablename__
        owner = self._models.get(type_name)
        if owner is not None and owner is not model:
            raise ConfigurationError(
                "이미 다른 모델이 사용 중인 subject 타입입니다.",
                {"type": type_name, "model": owner.__name__},
            )
        options = options.model_copy(update={"type_name": type_name})
        self._options[model] = options
        self._models[type_name] = model
        return options

    def versioned(self, **kwargs):
        """모델 클래스 데코레이터. ``@registry.versioned(versionable=["title"])``"""

        def decorator(model):
            self.register(model, VersionOptions(**kwargs))
            return model

        return decorator

    def unregister(self, model: Type) -> None:
        options = self._options.pop(model, None)
        if options is not None:
            self._models.pop(options.type_name, None)

    def is_registered(self, subject_or_model) -> bool:
        model = subject_or_model if isinstance(subject_or_model, type) else type(subject_or_model)
        return self._lookup(model) is not None

    def options_for(self, subject_or_model) -> VersionOptions:
        model = subject_or_model if isinstance(subject_or_model, type) else type(subject_or_model)
        options = self._lookup(model)
        if options is None:
            raise ConfigurationError("버전 관리 대상으로 등록되지 않은 모델입니다.", {"model": model.__name__})
        return options

    def model_for(self, type_name: str) -> type:
        model = self._models.get(type_name)
        if model is None:
            raise ConfigurationError("등록되지 않은 subject 타입입니다.", {"type": type_name})
        return model

    def type_names(self) -> List[str]:
        return sorted(self._models)

    def clear(self) -> None:
        self._options.clear()
        self._models.clear()

    def _lookup(self, model: type) -> Optional[VersionOptions]:
        # 상속받은 모델은 가장 가까운 등록 조상의 옵션을 사용한다.
        for klass in model.__mro__:
            if klass in self._options:
                return self._options[klass]
        return None


registry = VersionRegistry()
