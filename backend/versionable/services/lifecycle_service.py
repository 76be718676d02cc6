"""호스트의 생성/수정/삭제 이벤트를 받아 버전 기록 여부와 전략을 결정하는 조정 서비스입니다.

한 번의 저장 이벤트는 IDLE → CAPTURING → (VERSIONED | SKIPPED) → IDLE 순서로 진행됩니다.
같은 subject 에 대한 캡처는 SubjectLocks 로 직렬화되고, subject 저장과 버전 기록은
같은 세션 트랜잭션에서 함께 커밋되거나 함께 롤백됩니다.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from versionable.exceptions import SerializationError, StoreWriteError, VersionableError
from versionable.models.version import Version
from versionable.refs import ModelRef
from versionable.registry import VersionOptions, VersionRegistry, VersionStrategy, registry as default_registry
from versionable.services.diff_service import compute_delta
from versionable.services.identity import IdentityResolver, NullIdentityResolver
from versionable.services.restore_service import RestoreEngine
from versionable.services.serializer import encode_contents
from versionable.services.subject_store import SQLAlchemySubjectStore
from versionable.services.version_store import SubjectLocks, VersionStore, subject_locks

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    VERSIONED = "versioned"
    SKIPPED = "skipped"


@dataclass
class CaptureResult:
    state: CaptureState
    version: Optional[Version] = None
    delta: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def versioned(self) -> bool:
        return self.state == CaptureState.VERSIONED


class VersioningState:
    """프로세스 단위 버전 기록 on/off 스위치. 전역 또는 subject 타입별로 끌 수 있다."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self._enabled = True
        self._disabled_types: Set[str] = set()

    def enable(self, subject_type: Optional[str] = None) -> None:
        if subject_type is None:
            self._enabled = True
        else:
            self._disabled_types.discard(subject_type)

    def disable(self, subject_type: Optional[str] = None) -> None:
        if subject_type is None:
            self._enabled = False
        else:
            self._disabled_types.add(subject_type)

    def is_enabled(self, subject_type: Optional[str] = None) -> bool:
        return self._enabled and subject_type not in self._disabled_types

    @contextmanager
    def paused(self, subject_type: Optional[str] = None):
        saved = (self._enabled, set(self._disabled_types))
        self.disable(subject_type)
        try:
            yield
        finally:
            self._enabled, self._disabled_types = saved


class VersionLifecycle:
    def __init__(
        self,
        registry: Optional[VersionRegistry] = None,
        identity: Optional[IdentityResolver] = None,
        state: Optional[VersioningState] = None,
        subjects: Optional[SQLAlchemySubjectStore] = None,
        locks: Optional[SubjectLocks] = None,
    ):
        self.registry = registry or default_registry
        self.identity = identity or NullIdentityResolver()
        self.state = state or VersioningState()
        self.subjects = subjects or SQLAlchemySubjectStore(self.registry)
        self.locks = locks if locks is not None else subject_locks
        self._state_guard = threading.Lock()
        # 같은 ref 의 중첩 캡처는 가장 바깥 호출이 끝날 때 IDLE 로 돌아간다.
        self._capture_depth: Dict[ModelRef, int] = {}

    def store(self, db: Session) -> VersionStore:
        return VersionStore(db, self.subjects)

    def restorer(self, db: Session) -> RestoreEngine:
        return RestoreEngine(self.store(db))

    def state_of(self, ref: ModelRef) -> CaptureState:
        with self._state_guard:
            capturing = self._capture_depth.get(ref, 0) > 0
        return CaptureState.CAPTURING if capturing else CaptureState.IDLE

    # -- host lifecycle hooks -------------------------------------------------

    def on_created(self, db: Session, subject, *, force: bool = False, commit: bool = True) -> CaptureResult:
        return self._capture(db, subject, "created", force=force, commit=commit)

    def on_updated(self, db: Session, subject, *, force: bool = False, commit: bool = True) -> CaptureResult:
        return self._capture(db, subject, "updated", force=force, commit=commit)

    def on_soft_deleted(self, db: Session, subject, *, commit: bool = True) -> CaptureResult:
        options = self.registry.options_for(subject)
        if self._tracks_soft_delete(subject, options):
            return self._capture(db, subject, "soft_deleted", force=False, commit=commit)
        return self._skip_event(db, subject, "soft_delete_untracked", commit)

    def on_restored(self, db: Session, subject, *, commit: bool = True) -> CaptureResult:
        options = self.registry.options_for(subject)
        if self._tracks_soft_delete(subject, options) or options.version_on_restore:
            return self._capture(db, subject, "restored", force=options.version_on_restore, commit=commit)
        return self._skip_event(db, subject, "restore_untracked", commit)

    def on_deleted(
        self,
        db: Session,
        subject,
        *,
        force_delete_version: Optional[bool] = None,
        commit: bool = True,
    ) -> int:
        """하드 삭제 이벤트. 플래그가 켜진 경우에만 이력을 함께 삭제하고 삭제 건수를 돌려준다."""
        options = self.registry.options_for(subject)
        ref = self.subjects.subject_ref(subject)
        if force_delete_version is None:
            force_delete_version = options.force_delete_version
        store = self.store(db)
        deleted = 0
        with self.locks.hold(ref):
            if force_delete_version:
                deleted = store.delete_all_for(ref)
            else:
                logger.debug("[versionable] %s deleted, history kept", ref)
            if commit:
                store.commit()
        return deleted

    # -- conveniences ---------------------------------------------------------

    def ensure_initial_version(self, db: Session, subject, *, commit: bool = True) -> CaptureResult:
        """이력이 없는 기존 레코드에 FULL 기준 버전을 만든다."""
        db.flush()
        ref = self.subjects.subject_ref(subject)
        if self.store(db).count_for(ref) > 0:
            return CaptureResult(CaptureState.SKIPPED, reason="history_exists")
        return self._capture(db, subject, "initial", force=False, commit=commit)

    def apply_version(self, db: Session, subject, version_id: Any) -> Dict[str, Any]:
        ref = self.subjects.subject_ref(subject)
        attributes = self.restorer(db).reconstruct(ref, version_id)
        self.subjects.apply_attributes(subject, attributes)
        return attributes

    def revert(self, db: Session, subject, version_id: Any, *, commit: bool = True) -> CaptureResult:
        self.apply_version(db, subject, version_id)
        return self.on_updated(db, subject, commit=commit)

    def versions(self, db: Session, subject, newest_first: bool = False) -> List[Version]:
        return self.store(db).list_for(self.subjects.subject_ref(subject), newest_first=newest_first)

    def last_version(self, db: Session, subject) -> Optional[Version]:
        return self.store(db).latest_for(self.subjects.subject_ref(subject))

    def first_version(self, db: Session, subject) -> Optional[Version]:
        return self.store(db).first_for(self.subjects.subject_ref(subject))

    def get_version(self, db: Session, subject, version_id: Any) -> Version:
        return self.store(db).get(self.subjects.subject_ref(subject), version_id)

    # -- internals ------------------------------------------------------------

    def _enter_capture(self, ref: ModelRef) -> None:
        with self._state_guard:
            self._capture_depth[ref] = self._capture_depth.get(ref, 0) + 1

    def _leave_capture(self, ref: ModelRef) -> None:
        with self._state_guard:
            depth = self._capture_depth.get(ref, 0) - 1
            if depth > 0:
                self._capture_depth[ref] = depth
            else:
                self._capture_depth.pop(ref, None)

    def _tracks_soft_delete(self, subject, options: VersionOptions) -> bool:
        marker = options.soft_delete_field
        return bool(marker) and marker in self.subjects.get_versionable_fields(subject)

    def _skip_event(self, db: Session, subject, reason: str, commit: bool) -> CaptureResult:
        if commit:
            self.store(db).commit()
        logger.debug("[versionable] %s event ignored (%s)", type(subject).__name__, reason)
        return CaptureResult(CaptureState.SKIPPED, reason=reason)

    def _capture(self, db: Session, subject, event: str, *, force: bool, commit: bool) -> CaptureResult:
        options = self.registry.options_for(subject)
        if not self.state.is_enabled(options.type_name):
            return self._skip_event(db, subject, "disabled", commit)

        try:
            db.flush()
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreWriteError("subject 저장에 실패했습니다.", {"model": type(subject).__name__}) from exc

        ref = self.subjects.subject_ref(subject)
        store = self.store(db)
        with self.locks.hold(ref):
            self._enter_capture(ref)
            try:
                result = self._capture_locked(store, subject, ref, options, event, force)
                if commit:
                    store.commit()
            except VersionableError:
                db.rollback()
                raise
            finally:
                self._leave_capture(ref)
        return result

    def _capture_locked(
        self,
        store: VersionStore,
        subject,
        ref: ModelRef,
        options: VersionOptions,
        event: str,
        force: bool,
    ) -> CaptureResult:
        try:
            fields = self.subjects.get_versionable_fields(subject)
            current = self.subjects.get_current_attribute_values(subject, fields)
        except SerializationError as exc:
            logger.warning("[versionable] %s not versioned on %s: %s", ref, event, exc)
            return CaptureResult(CaptureState.SKIPPED, reason="serialization_error", error=exc)

        latest = store.latest_for(ref)
        if latest is None:
            # 비교할 이전 상태가 없으므로 설정과 무관하게 전체 스냅샷
            strategy = VersionStrategy.FULL
            delta = dict(current)
            contents = current
        else:
            previous = RestoreEngine(store).reconstruct_version(latest)
            delta = compute_delta(previous, current)
            if not delta and not force and options.skip_unchanged:
                logger.debug("[versionable] %s unchanged on %s, skipped", ref, event)
                return CaptureResult(CaptureState.SKIPPED, reason="unchanged")
            strategy = options.strategy
            contents = delta if strategy == VersionStrategy.DIFF else current

        actor = self.identity.current_actor()
        version = Version(
            subject_type=ref.type,
            subject_id=ref.id,
            actor_type=actor.type if actor else None,
            actor_id=actor.id if actor else None,
            strategy=strategy.value,
            contents=encode_contents(contents),
        )
        store.append(version, keep_versions=options.retention())
        return CaptureResult(CaptureState.VERSIONED, version=version, delta=delta)
