"""서비스 레이어 패키지 초기화 모듈입니다."""

from versionable.services import (
    serializer,
    diff_service,
    subject_store,
    version_store,
    restore_service,
    identity,
    lifecycle_service,
)
