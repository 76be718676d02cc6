"""subject 의 상태 전이를 한 건씩 기록하는 versions 테이블 SQLAlchemy 모델 정의입니다."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from versionable.config import settings
from versionable.database import Base
from versionable.refs import ModelRef

ID_SCHEME = "uuid" if settings.VERSIONABLE_UUID else "sequential"


def _new_uuid() -> str:
    return str(uuid4())


def _id_column() -> Column:
    if ID_SCHEME == "uuid":
        return Column(String(36), primary_key=True, default=_new_uuid)
    return Column(Integer, primary_key=True, autoincrement=True)


class Version(Base):
    __tablename__ = "versions"

    id = _id_column()
    version_no = Column(Integer, nullable=False)
    subject_type = Column(String(100), nullable=False)
    subject_id = Column(String(64), nullable=False)
    actor_type = Column(String(100), nullable=True)
    actor_id = Column(String(64), nullable=True)
    strategy = Column(String(10), nullable=False, default="full")  # full/diff
    contents = Column(Text, nullable=False)  # JSON string
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("subject_type", "subject_id", "version_no", name="uq_versions_subject_no"),
        Index("idx_versions_subject", "subject_type", "subject_id", "created_at"),
        Index("idx_versions_actor", "actor_type", "actor_id"),
    )

    @property
    def subject_ref(self) -> ModelRef:
        return ModelRef(type=self.subject_type, id=self.subject_id)

    @property
    def actor_ref(self):
        return ModelRef.optional(self.actor_type, self.actor_id)

    def __repr__(self) -> str:
        return f"<Version {self.id} {self.subject_type}#{self.subject_id} no={self.version_no} {self.strategy}>"
