"""SQL implementation of FeedReader."""

from collections.abc import Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from feedindex.domain.feed.model.request import Identity
from feedindex.domain.feed.port.feed_reader import FeedReader
from feedindex.domain.shared.error import ValidationError
from feedindex.infrastructure.persistence.feed_store import SqlFeedStore, coerce_ids
from feedindex.infrastructure.persistence.serializer import JsonDataSerializer


class SqlFeedReader(FeedReader):
    """Reads live (not soft-deleted) rows of the feed table and decodes them."""

    def __init__(
        self,
        engine: AsyncEngine,
        store: SqlFeedStore,
        serializer: JsonDataSerializer,
    ) -> None:
        self._engine = engine
        self._store = store
        self._serializer = serializer

    async def read_by_ids(self, feed_name: str, ids: Sequence[Identity]) -> dict[str, list[dict[str, Any]]]:
        metadata = self._store.metadata
        if feed_name != metadata.feed_name:
            raise ValidationError(
                f"Reader for feed '{metadata.feed_name}' cannot read feed '{feed_name}'",
                field="feed_name",
            )
        if not ids:
            return {"feed": []}

        _, feed = await self._store.tables()
        key = feed.c[metadata.feed_table_field]
        flag = feed.c[metadata.soft_delete_column]
        stmt = (
            select(feed)
            .where(key.in_(coerce_ids(key, ids)))
            .where(sa.or_(flag.is_(None), flag == sa.false()))
            .order_by(key, feed.c[self._serializer.scope_column])
        )
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = [dict(row) for row in result.mappings()]

        return {"feed": [self._serializer.deserialize(row) for row in rows]}
