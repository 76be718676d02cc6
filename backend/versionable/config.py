"""환경 변수 기반 버전 관리 설정을 중앙에서 관리합니다."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./versionable.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 0 = 무제한 보관
    VERSIONABLE_KEEP_VERSIONS: int = 0
    # versions.id 를 UUID 문자열로 발급할지 여부 (테이블 생성 시점에 고정)
    VERSIONABLE_UUID: bool = False
    # 타입별 옵션에 strategy 가 없을 때 사용하는 기본 전략 (full/diff)
    VERSIONABLE_STRATEGY: str = "diff"

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
