"""버전 이력 API 라우터입니다. 감사 뷰어/복원 화면이 사용하는 조회·비교·복원 엔드포인트를 제공합니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from versionable.database import get_db
from versionable.exceptions import (
    ConfigurationError,
    CorruptHistoryError,
    NotFoundError,
    StoreWriteError,
    VersionableError,
)
from versionable.middleware.auth_middleware import require_actor
from versionable.refs import ModelRef
from versionable.schemas.version import (
    ReconstructedVersionOut,
    VersionDiffOut,
    VersionOut,
    VersionRestoreResult,
)
from versionable.services.identity import ContextIdentityResolver
from versionable.services.lifecycle_service import VersionLifecycle
from versionable.services.version_store import to_response

router = APIRouter(prefix="/api/versions", tags=["versions"])


def get_lifecycle(request: Request) -> VersionLifecycle:
    return request.app.state.lifecycle


def _to_http(exc: VersionableError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail="버전 이력을 찾을 수 없습니다.")
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=404, detail="버전 관리 대상이 아닌 타입입니다.")
    if isinstance(exc, CorruptHistoryError):
        return HTTPException(status_code=409, detail="버전 이력이 손상되어 복원할 수 없습니다.")
    if isinstance(exc, StoreWriteError):
        return HTTPException(status_code=500, detail="버전 저장에 실패했습니다.")
    return HTTPException(status_code=400, detail=str(exc))


@router.get("/{subject_type}/{subject_id}", response_model=List[VersionOut])
def list_versions(
    subject_type: str,
    subject_id: str,
    db: Session = Depends(get_db),
    lifecycle: VersionLifecycle = Depends(get_lifecycle),
    actor: ModelRef = Depends(require_actor),
):
    ref = ModelRef(type=subject_type, id=subject_id)
    try:
        rows = lifecycle.store(db).list_for(ref, newest_first=True)
        return [to_response(row) for row in rows]
    except VersionableError as exc:
        raise _to_http(exc) from exc


@router.get("/{subject_type}/{subject_id}/{version_id}", response_model=ReconstructedVersionOut)
def get_version_state(
    subject_type: str,
    subject_id: str,
    version_id: str,
    db: Session = Depends(get_db),
    lifecycle: VersionLifecycle = Depends(get_lifecycle),
    actor: ModelRef = Depends(require_actor),
):
    ref = ModelRef(type=subject_type, id=subject_id)
    try:
        version = lifecycle.store(db).get(ref, version_id)
        attributes = lifecycle.restorer(db).reconstruct_version(version)
    except VersionableError as exc:
        raise _to_http(exc) from exc
    return {
        "version_id": version.id,
        "subject_type": subject_type,
        "subject_id": subject_id,
        "attributes": attributes,
    }


@router.get("/{subject_type}/{subject_id}/{version_id}/diff", response_model=VersionDiffOut)
def get_version_diff(
    subject_type: str,
    subject_id: str,
    version_id: str,
    against: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    lifecycle: VersionLifecycle = Depends(get_lifecycle),
    actor: ModelRef = Depends(require_actor),
):
    ref = ModelRef(type=subject_type, id=subject_id)
    try:
        return lifecycle.restorer(db).diff(ref, version_id, against_id=against)
    except VersionableError as exc:
        raise _to_http(exc) from exc


@router.post("/{subject_type}/{subject_id}/restore/{version_id}", response_model=VersionRestoreResult)
def restore_version(
    subject_type: str,
    subject_id: str,
    version_id: str,
    db: Session = Depends(get_db),
    lifecycle: VersionLifecycle = Depends(get_lifecycle),
    actor: ModelRef = Depends(require_actor),
):
    ref = ModelRef(type=subject_type, id=subject_id)
    try:
        lifecycle.registry.model_for(subject_type)
        subject = lifecycle.subjects.resolve(db, ref)
        if subject is None:
            raise HTTPException(status_code=404, detail="복원 대상 레코드를 찾을 수 없습니다.")
        with ContextIdentityResolver().acting_as(actor):
            attributes = lifecycle.apply_version(db, subject, version_id)
            result = lifecycle.on_updated(db, subject)
    except VersionableError as exc:
        raise _to_http(exc) from exc
    return {
        "message": "복원되었습니다.",
        "restored_version_id": version_id if not version_id.isdigit() else int(version_id),
        "new_version_id": result.version.id if result.version is not None else None,
        "attributes": attributes,
    }
