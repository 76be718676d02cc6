import logging
from pathlib import Path
from uuid import uuid4

import pytest
from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text, create_engine, inspect

from versionable.utils.schema_sync import ensure_versions_table, sync_missing_schema_objects


@pytest.fixture
def temp_engine():
    db_path = Path(f"./schema_sync_{uuid4().hex}.db").resolve()
    engine = create_engine(f"sqlite:///{db_path}")
    yield engine
    engine.dispose()
    if db_path.exists():
        db_path.unlink()


def test_sync_missing_schema_objects_adds_column_and_index(temp_engine):
    base_metadata = MetaData()
    Table(
        "sync_target",
        base_metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(100), nullable=False),
    )
    base_metadata.create_all(temp_engine)

    target_metadata = MetaData()
    table = Table(
        "sync_target",
        target_metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(100), nullable=False),
        Column("email", String(150), nullable=True),
    )
    Index("idx_sync_target_name", table.c.name)

    added = sync_missing_schema_objects(temp_engine, target_metadata.sorted_tables)

    inspector = inspect(temp_engine)
    column_names = {row["name"] for row in inspector.get_columns("sync_target")}
    index_names = {row.get("name") for row in inspector.get_indexes("sync_target")}

    assert "email" in column_names
    assert "idx_sync_target_name" in index_names
    assert added == ["sync_target.email", "idx_sync_target_name"]


def test_sync_skips_not_null_column_without_default(temp_engine, caplog):
    base_metadata = MetaData()
    Table("sync_target", base_metadata, Column("id", Integer, primary_key=True))
    base_metadata.create_all(temp_engine)

    target_metadata = MetaData()
    Table(
        "sync_target",
        target_metadata,
        Column("id", Integer, primary_key=True),
        Column("code", String(20), nullable=False),
    )

    with caplog.at_level(logging.WARNING):
        added = sync_missing_schema_objects(temp_engine, target_metadata.sorted_tables)

    assert added == []
    column_names = {row["name"] for row in inspect(temp_engine).get_columns("sync_target")}
    assert "code" not in column_names
    assert "sync_target.code" in caplog.text


def test_sync_ignores_missing_tables(temp_engine):
    metadata = MetaData()
    Table("not_created", metadata, Column("id", Integer, primary_key=True))
    assert sync_missing_schema_objects(temp_engine, metadata.sorted_tables) == []


def test_ensure_versions_table_creates_fresh_table(temp_engine):
    assert ensure_versions_table(temp_engine) == []

    inspector = inspect(temp_engine)
    assert "versions" in inspector.get_table_names()
    index_names = {row.get("name") for row in inspector.get_indexes("versions")}
    assert {"idx_versions_subject", "idx_versions_actor"} <= index_names


def test_ensure_versions_table_upgrades_legacy_table(temp_engine):
    # actor 컬럼이 없던 이전 배포의 versions 테이블
    legacy = MetaData()
    Table(
        "versions",
        legacy,
        Column("id", Integer, primary_key=True),
        Column("version_no", Integer, nullable=False),
        Column("subject_type", String(100), nullable=False),
        Column("subject_id", String(64), nullable=False),
        Column("strategy", String(10), nullable=False),
        Column("contents", Text, nullable=False),
        Column("created_at", DateTime),
        Column("updated_at", DateTime),
    )
    legacy.create_all(temp_engine)

    added = ensure_versions_table(temp_engine)

    assert "versions.actor_type" in added
    assert "versions.actor_id" in added
    assert "idx_versions_actor" in added
    column_names = {row["name"] for row in inspect(temp_engine).get_columns("versions")}
    assert {"actor_type", "actor_id"} <= column_names
