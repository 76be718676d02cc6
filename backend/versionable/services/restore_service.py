"""저장된 버전 체인을 재생해 과거 시점의 속성 맵을 복원합니다.

이 모듈은 subject 에 직접 쓰지 않습니다. 복원된 맵을 모델에 적용하고 저장하는 것은
호출자(또는 VersionLifecycle.revert)의 책임입니다.
"""

from typing import Any, Dict, Optional

from versionable.models.version import Version
from versionable.refs import ModelRef
from versionable.services.diff_service import compare, render_text, replay


class RestoreEngine:
    def __init__(self, store):
        self.store = store

    def reconstruct(self, ref: ModelRef, version_id: Any) -> Dict[str, Any]:
        target = self.store.get(ref, version_id)
        return self.reconstruct_version(target)

    def reconstruct_version(self, version: Version) -> Dict[str, Any]:
        return replay(self.store.iter_for(version.subject_ref), until=version)

    def reconstruct_latest(self, ref: ModelRef) -> Optional[Dict[str, Any]]:
        latest = self.store.latest_for(ref)
        if latest is None:
            return None
        return self.reconstruct_version(latest)

    def diff(self, ref: ModelRef, version_id: Any, against_id: Any = None) -> Dict[str, Any]:
        target = self.store.get(ref, version_id)
        if against_id is not None:
            against = self.store.get(ref, against_id)
        else:
            against = self.store.previous_of(target)
        before = self.reconstruct_version(against) if against is not None else {}
        after = self.reconstruct_version(target)
        return {
            "version_id": target.id,
            "against_version_id": against.id if against is not None else None,
            "changes": compare(before, after),
            "text": render_text(before, after),
        }
