"""ExistingDataFetcher - loads stored records for attribute-scoped merges."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.model.record import ExistingFeedData, FeedRecord, record_key
from feedindex.domain.feed.model.registry import FeedPool
from feedindex.domain.feed.model.request import Identity
from feedindex.domain.shared.service import Service

logger = logging.getLogger(__name__)


class ExistingDataFetcher(Service):
    """Reads current feed records and indexes them by scope then identity."""

    metadata: FeedIndexMetadata
    feed_pool: FeedPool

    async def fetch(self, ids: Sequence[Identity]) -> ExistingFeedData:
        """Return stored records for ``ids`` as ``{scope: {identity: record}}``.

        An empty ``ids`` returns an empty mapping without touching the reader.
        """
        if not ids:
            return {}

        feed_name = self.metadata.feed_name
        feed_data = await self.feed_pool.get_feed(feed_name).read_by_ids(feed_name, list(ids))

        output: ExistingFeedData = {}
        for item in feed_data.get("feed", []):
            scope, identity = record_key(item, self.metadata.feed_identity, self.metadata.scope_field)
            output.setdefault(scope, {})[identity] = item

        logger.debug(
            f"Fetched {sum(len(v) for v in output.values())} stored records "
            f"for {len(ids)} ids of feed '{feed_name}'"
        )
        return output

    def lookup(self, existing: ExistingFeedData, record: Mapping[str, Any]) -> FeedRecord | None:
        """Find the stored version of a produced record, if any."""
        if not existing:
            return None
        scope, identity = record_key(record, self.metadata.feed_identity, self.metadata.scope_field)
        by_identity = existing.get(scope)
        if by_identity is None:
            return None
        stored = by_identity.get(identity)
        if stored is None:
            # Change records may carry string ids while the store returns ints.
            stored = next((v for k, v in by_identity.items() if str(k) == str(identity)), None)
        return stored
