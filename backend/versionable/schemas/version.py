"""버전 이력 조회/복원 API 응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


class VersionOut(BaseModel):
    id: Union[int, str]
    version_no: int
    subject_type: str
    subject_id: str
    actor_type: Optional[str] = None
    actor_id: Optional[str] = None
    strategy: str
    contents: Dict[str, Any]
    removed_fields: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReconstructedVersionOut(BaseModel):
    version_id: Union[int, str]
    subject_type: str
    subject_id: str
    attributes: Dict[str, Any]


class FieldChangeOut(BaseModel):
    old: Any = None
    new: Any = None


class VersionDiffOut(BaseModel):
    version_id: Union[int, str]
    against_version_id: Optional[Union[int, str]] = None
    changes: Dict[str, FieldChangeOut]
    text: str


class VersionRestoreResult(BaseModel):
    message: str
    restored_version_id: Union[int, str]
    new_version_id: Optional[Union[int, str]] = None
    attributes: Dict[str, Any]
