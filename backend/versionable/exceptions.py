"""버전 관리 코어에서 사용하는 예외 계층입니다.

모든 예외는 VersionableError 를 상속하며, 발생 위치를 설명하는 ctx 딕셔너리를 함께 보관합니다.
HTTP 상태코드로의 변환은 라우터에서만 수행합니다.
"""

from typing import Any, Dict, Optional


class VersionableError(Exception):
    def __init__(self, msg: str, ctx: Optional[Dict[str, Any]] = None):
        super().__init__(msg)
        self.msg = msg
        self.ctx = ctx or {}

    def __str__(self) -> str:
        if self.ctx:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.ctx.items())
            return f"{self.msg} [{ctx_str}]"
        return self.msg


class SerializationError(VersionableError):
    """버전 대상 필드 값을 정규화된 JSON 값으로 변환할 수 없을 때 발생합니다."""


class StoreWriteError(VersionableError):
    """버전 append/prune/commit 이 실패했을 때 발생합니다. 세션은 이미 롤백된 상태입니다."""


class NotFoundError(VersionableError):
    """요청한 버전이 해당 subject 에 존재하지 않을 때 발생합니다."""


class CorruptHistoryError(VersionableError):
    """재생(replay) 기준이 되는 FULL 스냅샷에 도달할 수 없을 때 발생합니다."""


class ConfigurationError(VersionableError):
    """등록되지 않은 subject 타입, 잘못된 옵션 등 설정 오류입니다."""
