"""호스트 SQLAlchemy 모델과 버전 코어 사이의 어댑터입니다.

버전 대상 필드 결정, 현재 값 읽기, 복원된 속성 맵을 모델에 다시 적용하기,
(type, id) 참조를 실제 엔티티로 되돌리는 기능을 제공합니다.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from versionable.database import Base
from versionable.exceptions import ConfigurationError
from versionable.refs import ModelRef
from versionable.registry import VersionRegistry, registry as default_registry
from versionable.services import serializer

logger = logging.getLogger(__name__)

# versionable 목록이 비어 있을 때 자동으로 제외되는 컬럼
DEFAULT_EXCLUDED_FIELDS = ("created_at", "updated_at")


def _python_type(column_type):
    try:
        return column_type.python_type
    except NotImplementedError:
        return None


def _coerce(column_type, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    python_type = _python_type(column_type)
    if python_type is None:
        return value
    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is date:
        return date.fromisoformat(value)
    if python_type is time:
        return time.fromisoformat(value)
    if python_type is Decimal:
        return Decimal(value)
    if python_type is UUID:
        return UUID(value)
    if isinstance(python_type, type) and issubclass(python_type, Enum):
        return python_type(value)
    return value


def _coerce_key(column, part: str) -> Any:
    python_type = _python_type(column.type)
    if python_type is int:
        return int(part)
    if python_type is UUID:
        return UUID(part)
    return part


class SQLAlchemySubjectStore:
    def __init__(self, registry: Optional[VersionRegistry] = None, base=Base):
        self.registry = registry or default_registry
        self.base = base

    def subject_ref(self, subject) -> ModelRef:
        options = self.registry.options_for(subject)
        return ModelRef.for_instance(subject, options.type_name)

    def get_versionable_fields(self, subject) -> List[str]:
        options = self.registry.options_for(subject)
        if options.versionable:
            fields = list(options.versionable)
        else:
            mapper = inspect(type(subject))
            primary = {mapper.get_property_by_column(column).key for column in mapper.primary_key}
            fields = [
                attr.key
                for attr in mapper.column_attrs
                if attr.key not in primary and attr.key not in DEFAULT_EXCLUDED_FIELDS
            ]
        excluded = set(options.dont_versionable)
        return [name for name in fields if name not in excluded]

    def get_current_attribute_values(self, subject, fields: List[str]) -> Dict[str, Any]:
        return serializer.extract(subject, fields)

    def apply_attributes(self, subject, attributes: Mapping[str, Any]) -> List[str]:
        columns = {attr.key: attr for attr in inspect(type(subject)).column_attrs}
        applied = []
        for name, value in attributes.items():
            attr = columns.get(name)
            if attr is None:
                logger.debug("[versionable] skip unknown attribute %s on %s", name, type(subject).__name__)
                continue
            setattr(subject, name, _coerce(attr.columns[0].type, value))
            applied.append(name)
        return applied

    def model_for_type(self, type_name: str) -> type:
        try:
            return self.registry.model_for(type_name)
        except ConfigurationError:
            pass
        # 버전 대상이 아닌 actor 모델은 Base 레지스트리에서 테이블명으로 찾는다.
        for mapper in self.base.registry.mappers:
            if getattr(mapper.class_, "__tablename__", None) == type_name:
                return mapper.class_
        raise ConfigurationError("알 수 없는 모델 타입입니다.", {"type": type_name})

    def resolve(self, db: Session, ref: Optional[ModelRef]):
        if ref is None:
            return None
        model = self.model_for_type(ref.type)
        columns = inspect(model).primary_key
        parts = ref.key_parts(len(columns))
        if len(parts) != len(columns):
            return None
        try:
            key = tuple(_coerce_key(column, part) for column, part in zip(columns, parts))
        except ValueError:
            return None
        return db.get(model, key[0] if len(key) == 1 else key)
