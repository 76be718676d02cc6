"""FastAPI 애플리케이션 진입점. 버전 이력 라우터와 버전 관리 코어를 연결합니다."""

from typing import Optional

from fastapi import FastAPI

from versionable.config import configure_logging, settings
from versionable.database import engine
from versionable.routers import versions
from versionable.services.identity import ContextIdentityResolver
from versionable.services.lifecycle_service import VersionLifecycle
from versionable.utils.schema_sync import ensure_versions_table


def create_app(lifecycle: Optional[VersionLifecycle] = None) -> FastAPI:
    app = FastAPI(
        title="Versionable",
        description="모델 변경 이력 저장/복원 API",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )
    app.state.lifecycle = lifecycle or VersionLifecycle(identity=ContextIdentityResolver())
    app.include_router(versions.router)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok", "service": "Versionable 버전 이력 서비스"}

    @app.on_event("startup")
    def ensure_schema():
        configure_logging()
        # 기존 배포의 versions 테이블에 누락된 컬럼/인덱스를 보강한다.
        ensure_versions_table(engine)

    return app


app = create_app()
