"""테스트용 호스트 모델. 버전 대상 게시글과 여러 종류의 actor 테이블을 정의합니다."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from versionable.database import Base
from versionable.registry import VersionStrategy, registry


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(100))
    deleted_at = Column(DateTime, nullable=True)


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(100))
    deleted_at = Column(DateTime, nullable=True)


class OrganisationUser(Base):
    __tablename__ = "organisation_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(100))
    organisation_id = Column(Integer)
    deleted_at = Column(DateTime, nullable=True)


@registry.versioned(versionable=["title", "content", "extends"], strategy=VersionStrategy.DIFF)
class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200))
    content = Column(Text)
    extends = Column(JSON)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    not_versionable_field = Column(String(100))
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


@registry.versioned(strategy=VersionStrategy.FULL, dont_versionable=["view_count"])
class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200))
    body = Column(Text)
    published_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, default=0)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Label(Base):
    __tablename__ = "labels"

    code = Column(String(100), primary_key=True)
    name = Column(String(100))
