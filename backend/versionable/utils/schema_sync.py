"""versions 테이블 런타임 스키마 동기화 유틸리티."""

from __future__ import annotations

import logging
from typing import Iterable, List

from sqlalchemy import Table, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.schema import CreateColumn, CreateIndex

from versionable.models.version import Version

logger = logging.getLogger(__name__)


def sync_missing_schema_objects(engine: Engine, tables: Iterable[Table]) -> List[str]:
    """이미 존재하는 테이블에 모델 기준으로 누락된 컬럼/인덱스를 추가하고, 추가한 항목 이름을 돌려준다."""
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    preparer = engine.dialect.identifier_preparer
    added: List[str] = []

    with engine.begin() as conn:
        for table in tables:
            if table.name not in existing_tables:
                continue

            existing_columns = {
                str(row.get("name"))
                for row in inspector.get_columns(table.name)
                if row.get("name")
            }
            table_sql = preparer.format_table(table)

            for column in table.columns:
                if column.name in existing_columns:
                    continue
                if not column.nullable and column.server_default is None:
                    # 기존 행을 채울 값이 없으므로 자동 추가 대상이 아니다.
                    logger.warning(
                        "[versionable] cannot add NOT NULL column %s.%s without server default",
                        table.name, column.name,
                    )
                    continue
                column_sql = str(CreateColumn(column).compile(dialect=engine.dialect)).strip()
                conn.execute(text(f"ALTER TABLE {table_sql} ADD COLUMN {column_sql}"))
                added.append(f"{table.name}.{column.name}")

            existing_index_names = {
                str(row.get("name"))
                for row in inspector.get_indexes(table.name)
                if row.get("name")
            }
            for index in table.indexes:
                if not index.name or index.name in existing_index_names:
                    continue
                conn.execute(CreateIndex(index))
                added.append(index.name)

    if added:
        logger.info("[versionable] schema synced: %s", ", ".join(added))
    return added


def ensure_versions_table(engine: Engine) -> List[str]:
    table = Version.__table__
    table.create(bind=engine, checkfirst=True)
    return sync_missing_schema_objects(engine, [table])
