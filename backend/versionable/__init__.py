"""SQLAlchemy 모델 변경 이력(버전) 저장/복원 패키지입니다."""

from versionable.exceptions import (
    ConfigurationError,
    CorruptHistoryError,
    NotFoundError,
    SerializationError,
    StoreWriteError,
    VersionableError,
)
from versionable.models.version import Version
from versionable.refs import ModelRef
from versionable.registry import IdScheme, VersionOptions, VersionRegistry, VersionStrategy, registry
from versionable.services.lifecycle_service import (
    CaptureResult,
    CaptureState,
    VersionLifecycle,
    VersioningState,
)
from versionable.services.restore_service import RestoreEngine
from versionable.services.version_store import VersionStore

__all__ = [
    "CaptureResult",
    "CaptureState",
    "ConfigurationError",
    "CorruptHistoryError",
    "IdScheme",
    "ModelRef",
    "NotFoundError",
    "RestoreEngine",
    "SerializationError",
    "StoreWriteError",
    "Version",
    "VersionLifecycle",
    "VersionOptions",
    "VersionRegistry",
    "VersionStore",
    "VersionStrategy",
    "VersioningState",
    "VersionableError",
    "registry",
]
