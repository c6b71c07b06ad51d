"""FeedIndexer - full and incremental entry points for one feed."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import logfire

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.model.request import (
    Identity,
    IndexRequest,
    full_recompute,
    parse_change,
)
from feedindex.domain.feed.port.feed_store import FeedStore
from feedindex.domain.feed.service.reconciler import Reconciler
from feedindex.domain.feed.service.scanner import CursorScanner
from feedindex.domain.shared.service import Service

logger = logging.getLogger(__name__)


class FeedIndexer(Service):
    """Keeps a feed table in sync with its source table.

    Every entry point flags orphaned feed rows before reconciling the same
    identities, so a row whose source vanished is soft-deleted even when the
    producer never mentions it. Calls against one feed must not overlap.
    """

    metadata: FeedIndexMetadata
    store: FeedStore
    reconciler: Reconciler

    def scanner(self) -> CursorScanner:
        """A fresh scan over every source identity."""
        return CursorScanner(self.store, self.metadata)

    async def execute_full(self) -> None:
        """Rebuild the feed from scratch.

        The truncate drops soft-delete history and is not undone if a later
        batch fails.
        """
        with logfire.span("FeedIndexer.execute_full", feed=self.metadata.feed_name):
            await self.store.truncate()
            logger.info(f"Truncated feed table '{self.metadata.feed_table_name}'")

            batches = 0
            async for ids in self.scanner():
                await self._index(ids, full_recompute(ids))
                batches += 1

            logfire.info("Full reindex finished", feed=self.metadata.feed_name, batches=batches)

    async def execute_list(self, ids: Sequence[Identity]) -> None:
        """Fully recompute the given identities."""
        ids = list(ids)
        with logfire.span("FeedIndexer.execute_list", feed=self.metadata.feed_name, count=len(ids)):
            await self._index(ids, full_recompute(ids))

    async def execute_row(self, id: Identity) -> None:
        """Fully recompute a single identity."""
        await self.execute_list([id])

    async def execute(self, changes: Iterable[Identity | Mapping[str, Any]]) -> None:
        """Index a mix of bare identities and change-tracking records.

        Change records (``entity_id``, ``attribute_ids``, ``store_id``) with
        attribute hints become partial recomputes merged over stored data.

        Raises:
            ValidationError: If any change record is malformed. Nothing is
                written in that case.
        """
        requests = [parse_change(change) for change in changes]
        with logfire.span("FeedIndexer.execute", feed=self.metadata.feed_name, count=len(requests)):
            await self._index([request.identity for request in requests], requests)

    async def _index(self, ids: list[Identity], requests: list[IndexRequest]) -> None:
        if not ids:
            return
        try:
            removed = await self.store.mark_removed(ids)
            if removed:
                logger.info(f"Marked {removed} rows of feed '{self.metadata.feed_name}' as deleted")
            await self.reconciler.process(requests)
        except Exception as e:
            logger.error(
                f"Indexing {len(ids)} ids of feed '{self.metadata.feed_name}' failed "
                f"(first ids: {ids[:3]}): {e}"
            )
            raise
