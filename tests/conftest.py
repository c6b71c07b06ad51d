"""Global test fixtures and fakes."""

import os
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from feedindex.domain.feed.model.metadata import FeedIndexMetadata

# Keep a developer's config file out of the test run
os.environ.pop("FEEDINDEX_CONFIG_FILE", None)


class FakeProducer:
    """In-memory record producer.

    ``catalog`` maps an identity to its records, one per store view. Partial
    requests only get the requested attributes back, like a real exporter.
    """

    def __init__(self, catalog: dict[int, list[dict[str, Any]]] | None = None) -> None:
        self.catalog = catalog or {}
        self.calls: list[tuple[str, list[dict[str, Any]]]] = []
        self.produce = AsyncMock(side_effect=self._produce)

    async def _produce(self, feed_name: str, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self.calls.append((feed_name, requests))
        output = []
        for request in requests:
            for record in self.catalog.get(int(request["productId"]), []):
                attribute_ids = request.get("attribute_ids")
                if attribute_ids:
                    keep = {"productId", "storeViewCode", *attribute_ids}
                    record = {k: v for k, v in record.items() if k in keep}
                output.append(dict(record))
        return output


class RecordingCallback:
    """Callback sink keeping every notification it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[list, list]] = []

    async def execute(self, entries: list, delete_ids: list) -> None:
        self.calls.append((list(entries), list(delete_ids)))


@pytest.fixture
def feed_metadata() -> FeedIndexMetadata:
    return FeedIndexMetadata(
        feed_name="products",
        source_table_name="catalog_product_entity",
        source_table_field="entity_id",
        feed_table_name="catalog_data_exporter_products",
        feed_table_field="id",
        feed_identity="productId",
        batch_size=2,
    )


@pytest.fixture
def producer() -> FakeProducer:
    return FakeProducer()


@pytest.fixture
def callback() -> RecordingCallback:
    return RecordingCallback()


# =============================================================================
# SQLite database with a product source table and its feed table
# =============================================================================

schema = sa.MetaData()

source_table = sa.Table(
    "catalog_product_entity",
    schema,
    sa.Column("entity_id", sa.Integer, primary_key=True),
    sa.Column("sku", sa.String, nullable=False),
)

feed_table = sa.Table(
    "catalog_data_exporter_products",
    schema,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("store_view_code", sa.String, primary_key=True),
    sa.Column("feed_data", sa.Text, nullable=False),
    sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("modified_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("locked", sa.String, nullable=True),  # never in the mutable column list
)


class Database:
    """Test helper around the SQLite engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def insert_source(self, *ids: int) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(source_table.insert(), [{"entity_id": i, "sku": f"SKU-{i}"} for i in ids])

    async def delete_source(self, *ids: int) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(source_table.delete().where(source_table.c.entity_id.in_(ids)))

    async def insert_feed(self, *rows: dict[str, Any]) -> None:
        async with self.engine.begin() as conn:
            await conn.execute(feed_table.insert(), list(rows))

    async def feed_rows(self) -> list[dict[str, Any]]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                sa.select(feed_table).order_by(feed_table.c.id, feed_table.c.store_view_code)
            )
            return [dict(row) for row in result.mappings()]


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(schema.create_all)
    yield Database(engine)
    await engine.dispose()
