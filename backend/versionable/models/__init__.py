"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from versionable.models.version import Version

__all__ = [
    "Version",
]
