"""버전 레코드의 append/prune/조회/삭제를 담당하는 저장소 서비스입니다."""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from versionable.exceptions import CorruptHistoryError, NotFoundError, StoreWriteError
from versionable.models.version import ID_SCHEME, Version
from versionable.refs import ModelRef
from versionable.registry import VersionStrategy
from versionable.services.diff_service import replay
from versionable.services.serializer import REMOVED, decode_contents, encode_contents
from versionable.services.subject_store import SQLAlchemySubjectStore

logger = logging.getLogger(__name__)


class SubjectLocks:
    """같은 subject 에 대한 캡처(이전 상태 조회 → delta → append → prune)를 직렬화합니다."""

    def __init__(self):
        self._guard = threading.Lock()
        # ref -> [RLock, 대기/보유 중인 호출 수]. 0 이 되면 항목을 지운다.
        self._locks: Dict[ModelRef, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, ref: ModelRef):
        with self._guard:
            entry = self._locks.get(ref)
            if entry is None:
                entry = self._locks[ref] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[ref]


subject_locks = SubjectLocks()


def _coerce_version_id(version_id: Any):
    if ID_SCHEME == "uuid":
        try:
            return str(UUID(str(version_id)))
        except ValueError:
            return None
    try:
        return int(version_id)
    except (TypeError, ValueError):
        return None


class VersionStore:
    def __init__(self, db: Session, subjects: Optional[SQLAlchemySubjectStore] = None):
        self.db = db
        self.subjects = subjects or SQLAlchemySubjectStore()

    def _query(self, ref: ModelRef) -> Query:
        return self.db.query(Version).filter(
            Version.subject_type == ref.type,
            Version.subject_id == ref.id,
        )

    def iter_for(self, ref: ModelRef, newest_first: bool = False) -> Query:
        query = self._query(ref)
        if newest_first:
            return query.order_by(Version.created_at.desc(), Version.version_no.desc(), Version.id.desc())
        return query.order_by(Version.created_at.asc(), Version.version_no.asc(), Version.id.asc())

    def list_for(self, ref: ModelRef, newest_first: bool = False) -> List[Version]:
        return self.iter_for(ref, newest_first=newest_first).all()

    def count_for(self, ref: ModelRef) -> int:
        return self._query(ref).count()

    def latest_for(self, ref: ModelRef) -> Optional[Version]:
        return self.iter_for(ref, newest_first=True).first()

    def first_for(self, ref: ModelRef) -> Optional[Version]:
        return self.iter_for(ref).first()

    def get(self, ref: ModelRef, version_id: Any) -> Version:
        key = _coerce_version_id(version_id)
        row = None
        if key is not None:
            row = self._query(ref).filter(Version.id == key).first()
        if not row:
            raise NotFoundError("버전 이력을 찾을 수 없습니다.", {"subject": str(ref), "version_id": version_id})
        return row

    def previous_of(self, version: Version) -> Optional[Version]:
        return (
            self._query(version.subject_ref)
            .filter(Version.version_no < version.version_no)
            .order_by(Version.version_no.desc())
            .first()
        )

    def next_of(self, version: Version) -> Optional[Version]:
        return (
            self._query(version.subject_ref)
            .filter(Version.version_no > version.version_no)
            .order_by(Version.version_no.asc())
            .first()
        )

    def _next_version_no(self, ref: ModelRef) -> int:
        current_max = (
            self.db.query(func.max(Version.version_no))
            .filter(
                Version.subject_type == ref.type,
                Version.subject_id == ref.id,
            )
            .scalar()
        )
        return (current_max or 0) + 1

    def append(self, version: Version, keep_versions: int = 0):
        ref = version.subject_ref
        try:
            version.version_no = self._next_version_no(ref)
            self.db.add(version)
            self.db.flush()
            self._prune(ref, keep_versions)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("[versionable] append failed for %s: %s", ref, exc)
            raise StoreWriteError("버전 저장에 실패했습니다.", {"subject": str(ref)}) from exc
        logger.info(
            "[versionable] appended version %s for %s (no=%s, strategy=%s)",
            version.id, ref, version.version_no, version.strategy,
        )
        return version.id

    def prune(self, ref: ModelRef, keep_versions: int) -> List[Version]:
        try:
            return self._prune(ref, keep_versions)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("[versionable] prune failed for %s: %s", ref, exc)
            raise StoreWriteError("버전 정리에 실패했습니다.", {"subject": str(ref)}) from exc

    def _prune(self, ref: ModelRef, keep_versions: int) -> List[Version]:
        if not keep_versions or keep_versions <= 0:
            return []
        versions = self.list_for(ref)
        excess = len(versions) - keep_versions
        if excess <= 0:
            return []
        evicted, retained = versions[:excess], versions[excess:]
        head = retained[0]
        if head.strategy != VersionStrategy.FULL.value:
            # 앞선 delta 를 지우기 전에 남는 가장 오래된 버전을 전체 스냅샷으로 만든다.
            state = replay(versions, until=head)
            head.contents = encode_contents(state)
            head.strategy = VersionStrategy.FULL.value
            logger.info("[versionable] materialized version %s of %s as full snapshot", head.id, ref)
        for row in evicted:
            self.db.delete(row)
        self.db.flush()
        logger.info("[versionable] pruned %d version(s) of %s (keep=%d)", len(evicted), ref, keep_versions)
        return evicted

    def delete_all_for(self, ref: ModelRef) -> int:
        try:
            count = self._query(ref).delete(synchronize_session="fetch")
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("[versionable] delete failed for %s: %s", ref, exc)
            raise StoreWriteError("버전 이력 삭제에 실패했습니다.", {"subject": str(ref)}) from exc
        logger.info("[versionable] deleted %d version(s) of %s", count, ref)
        return count

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("[versionable] commit failed: %s", exc)
            raise StoreWriteError("버전 트랜잭션 커밋에 실패했습니다.") from exc

    def resolve(self, ref: Optional[ModelRef]):
        return self.subjects.resolve(self.db, ref)

    def actor_of(self, version: Version):
        return self.resolve(version.actor_ref)

    def subject_of(self, version: Version):
        return self.resolve(version.subject_ref)


def parse_contents(row: Version) -> Dict[str, Any]:
    try:
        return decode_contents(row.contents, removals=row.strategy != VersionStrategy.FULL.value)
    except CorruptHistoryError as exc:
        raise CorruptHistoryError("저장된 contents 를 해석할 수 없습니다.", {"version_id": row.id}) from exc


def to_response(row: Version) -> Dict[str, Any]:
    contents = parse_contents(row)
    return {
        "id": row.id,
        "version_no": row.version_no,
        "subject_type": row.subject_type,
        "subject_id": row.subject_id,
        "actor_type": row.actor_type,
        "actor_id": row.actor_id,
        "strategy": row.strategy,
        "contents": {name: value for name, value in contents.items() if value is not REMOVED},
        # delta 에서 사라진 필드는 값 대신 이름 목록으로 노출한다.
        "removed_fields": [name for name, value in contents.items() if value is REMOVED],
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }
