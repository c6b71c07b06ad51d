"""CursorScanner - keyset pagination over the source table."""

import logging

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.model.request import Identity
from feedindex.domain.feed.port.feed_store import FeedStore

logger = logging.getLogger(__name__)


class CursorScanner:
    """Async iterator over batches of source identities, in ascending key order.

    Each advance asks the store for keys greater than the last key seen, so rows
    inserted during the scan with larger keys are still visited, and at most one
    page is held in memory. Iteration ends on the first empty page.
    """

    def __init__(self, store: FeedStore, metadata: FeedIndexMetadata) -> None:
        self._store = store
        self._batch_size = metadata.batch_size
        self.last_known_id: Identity = 0
        self._exhausted = False

    def reset(self) -> None:
        """Restart the scan from the beginning of the table."""
        self.last_known_id = 0
        self._exhausted = False

    def __aiter__(self) -> "CursorScanner":
        return self

    async def __anext__(self) -> list[Identity]:
        if self._exhausted:
            raise StopAsyncIteration

        ids = await self._store.fetch_ids_after(self.last_known_id, self._batch_size)
        if not ids:
            self._exhausted = True
            raise StopAsyncIteration

        self.last_known_id = ids[-1]
        logger.debug(f"Scanned {len(ids)} source ids up to {self.last_known_id}")
        return ids
