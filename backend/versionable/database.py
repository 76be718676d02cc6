"""SQLAlchemy 엔진/세션/Base 를 제공하는 데이터베이스 모듈입니다."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from versionable.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
