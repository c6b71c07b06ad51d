"""Dependency injection wiring for configured feeds."""

import logging
from collections.abc import AsyncIterable
from typing import NewType

from dishka import AsyncContainer, Provider, Scope, from_context, make_async_container, provide
from sqlalchemy.ext.asyncio import AsyncEngine

from feedindex.config import Config
from feedindex.domain.feed.model.registry import FeedPool
from feedindex.domain.feed.port.feed_reader import FeedReader
from feedindex.domain.feed.service.fetcher import ExistingDataFetcher
from feedindex.domain.feed.service.indexer import FeedIndexer
from feedindex.domain.feed.service.reconciler import Reconciler
from feedindex.infrastructure.callback import LoggingFeedIndexerCallback
from feedindex.infrastructure.persistence.database import create_db_engine
from feedindex.infrastructure.persistence.feed_reader import SqlFeedReader
from feedindex.infrastructure.persistence.feed_store import SqlFeedStore
from feedindex.infrastructure.persistence.serializer import JsonDataSerializer
from feedindex.infrastructure.producer.discovery import (
    ProducerFactory,
    build_producer,
    discover_producers,
)

logger = logging.getLogger(__name__)

FeedIndexers = NewType("FeedIndexers", dict[str, FeedIndexer])
ProducerFactories = NewType("ProducerFactories", dict[str, ProducerFactory])
FeedStores = NewType("FeedStores", dict[str, SqlFeedStore])


class FeedIndexProvider(Provider):
    """Builds one FeedIndexer per configured feed, sharing a single engine."""

    config = from_context(provides=Config, scope=Scope.APP)

    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterable[AsyncEngine]:
        engine = create_db_engine(config.database)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_producer_factories(self) -> ProducerFactories:
        return ProducerFactories(discover_producers())

    @provide(scope=Scope.APP)
    def get_stores(self, config: Config, engine: AsyncEngine) -> FeedStores:
        return FeedStores({feed.name: SqlFeedStore(engine, feed.metadata) for feed in config.feeds})

    @provide(scope=Scope.APP)
    def get_feed_pool(self, config: Config, engine: AsyncEngine, stores: FeedStores) -> FeedPool:
        readers: dict[str, FeedReader] = {}
        for feed in config.feeds:
            serializer = JsonDataSerializer(feed.metadata)
            readers[feed.name] = SqlFeedReader(engine, stores[feed.name], serializer)
        return FeedPool(readers)

    @provide(scope=Scope.APP)
    def get_indexers(
        self,
        config: Config,
        stores: FeedStores,
        feed_pool: FeedPool,
        factories: ProducerFactories,
    ) -> FeedIndexers:
        indexers: dict[str, FeedIndexer] = {}
        for feed in config.feeds:
            store = stores[feed.name]
            reconciler = Reconciler(
                metadata=feed.metadata,
                store=store,
                producer=build_producer(feed, factories),
                fetcher=ExistingDataFetcher(metadata=feed.metadata, feed_pool=feed_pool),
                serializer=JsonDataSerializer(feed.metadata),
                callback=LoggingFeedIndexerCallback(feed.name),
                callback_skip_attributes=tuple(feed.callback_skip_attributes),
            )
            indexers[feed.name] = FeedIndexer(metadata=feed.metadata, store=store, reconciler=reconciler)
            logger.debug(f"Configured indexer for feed '{feed.name}'")
        return FeedIndexers(indexers)


def create_container(config: Config | None = None) -> AsyncContainer:
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()
    return make_async_container(FeedIndexProvider(), context={Config: config})
