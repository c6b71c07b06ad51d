"""SQL implementation of FeedStore over reflected source and feed tables."""

import logging
from collections.abc import Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy import select, text
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.model.request import Identity
from feedindex.domain.feed.port.feed_store import FeedStore
from feedindex.domain.shared.error import ConfigurationError
from feedindex.infrastructure.persistence.database import reflect_tables

logger = logging.getLogger(__name__)


def coerce_ids(column: sa.Column, ids: Sequence[Identity]) -> list[Identity]:
    """Convert ids to the column's Python type where possible.

    Change records usually deliver ids as strings while keys are integers.
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return list(ids)
    coerced: list[Identity] = []
    for value in ids:
        try:
            coerced.append(value if isinstance(value, python_type) else python_type(value))
        except (TypeError, ValueError):
            coerced.append(value)
    return coerced


class SqlFeedStore(FeedStore):
    """Runs the indexer's table operations through SQLAlchemy Core.

    Source and feed tables are reflected on first use. Every write runs in its
    own transaction, so one upsert call is one committed chunk.
    """

    def __init__(self, engine: AsyncEngine, metadata: FeedIndexMetadata) -> None:
        self._engine = engine
        self._metadata = metadata
        self._source: sa.Table | None = None
        self._feed: sa.Table | None = None

    @property
    def metadata(self) -> FeedIndexMetadata:
        return self._metadata

    async def tables(self) -> tuple[sa.Table, sa.Table]:
        """Return the reflected ``(source, feed)`` tables."""
        if self._source is None or self._feed is None:
            meta = self._metadata
            tables = await reflect_tables(self._engine, meta.source_table_name, meta.feed_table_name)
            source = tables[meta.source_table_name]
            feed = tables[meta.feed_table_name]
            self._check_columns(source, [meta.source_table_field])
            source_key = source.c[meta.source_table_field]
            if not isinstance(source_key.type, sa.Integer):
                raise ConfigurationError(
                    f"Source key {source.name}.{source_key.name} must be an integer column, "
                    f"got {source_key.type}"
                )
            self._check_columns(
                feed,
                [meta.feed_table_field, meta.soft_delete_column, *meta.feed_table_mutable_columns],
            )
            self._source, self._feed = source, feed
        return self._source, self._feed

    @staticmethod
    def _check_columns(table: sa.Table, columns: Sequence[str]) -> None:
        missing = [c for c in columns if c not in table.c]
        if missing:
            raise ConfigurationError(f"Table {table.name!r} has no columns {missing}")

    async def fetch_ids_after(self, last_known_id: Identity, limit: int) -> list[Identity]:
        source, _ = await self.tables()
        key = source.c[self._metadata.source_table_field]
        stmt = (
            select(key.label(self._metadata.feed_identity))
            .where(key > last_known_id)
            .order_by(key)
            .limit(limit)
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return [row[0] for row in result]

    async def mark_removed(self, ids: Sequence[Identity]) -> int:
        if not ids:
            return 0

        source, feed = await self.tables()
        source_key = source.c[self._metadata.source_table_field]
        feed_key = feed.c[self._metadata.feed_table_field]
        flag = feed.c[self._metadata.soft_delete_column]

        # Anti-join: feed rows in ids with no matching source row
        has_source = select(source_key).where(source_key == feed_key).correlate(feed).exists()
        stmt = (
            sa.update(feed)
            .where(feed_key.in_(coerce_ids(feed_key, ids)))
            .where(~has_source)
            .where(sa.or_(flag.is_(None), flag == sa.false()))
            .values({flag.name: True})
        )
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            return max(result.rowcount or 0, 0)

    async def upsert(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0

        _, feed = await self.tables()
        rows = [{k: v for k, v in row.items() if k in feed.c} for row in rows]
        stmt = self._upsert_statement(feed)
        async with self._engine.begin() as conn:
            await conn.execute(stmt, rows)
        return len(rows)

    def _upsert_statement(self, feed: sa.Table) -> sa.Insert:
        mutable = list(self._metadata.feed_table_mutable_columns)
        dialect = self._engine.dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(feed)
            keys = [c.name for c in feed.primary_key.columns]
            if not keys:
                raise ConfigurationError(f"Feed table {feed.name!r} has no primary key")
            if not mutable:
                return stmt.on_conflict_do_nothing(index_elements=keys)
            return stmt.on_conflict_do_update(
                index_elements=keys,
                set_=dict(self._update_values(feed, mutable, stmt.excluded)),
            )

        if dialect in ("mysql", "mariadb"):
            stmt = mysql.insert(feed)
            # MySQL has no DO NOTHING; rewriting the key is a no-op update
            updates = mutable or [self._metadata.feed_table_field]
            # Assignments run left to right, the timestamp must see the old values
            return stmt.on_duplicate_key_update(self._update_values(feed, updates, stmt.inserted))

        raise ConfigurationError(f"Upsert is not supported for dialect {dialect!r}")

    def _update_values(self, feed: sa.Table, columns: list[str], incoming: Any) -> list[tuple[str, Any]]:
        """Conflict assignments, with the timestamp column first and conditional."""
        timestamp = self._metadata.timestamp_column
        content = [column for column in columns if column != timestamp]
        values: list[tuple[str, Any]] = []
        if timestamp in columns:
            if content:
                changed = sa.or_(*(feed.c[column].is_distinct_from(incoming[column]) for column in content))
                values.append((timestamp, sa.case((changed, incoming[timestamp]), else_=feed.c[timestamp])))
            else:
                values.append((timestamp, incoming[timestamp]))
        values.extend((column, incoming[column]) for column in content)
        return values

    async def truncate(self) -> None:
        _, feed = await self.tables()
        async with self._engine.begin() as conn:
            if conn.dialect.name == "sqlite":
                await conn.execute(sa.delete(feed))
            else:
                table_name = conn.dialect.identifier_preparer.format_table(feed)
                await conn.execute(text(f"TRUNCATE TABLE {table_name}"))
