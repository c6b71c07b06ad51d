"""Default callback sink - logs what each indexing call changed."""

import logging

import logfire

from feedindex.domain.feed.model.record import CallbackEntry
from feedindex.domain.feed.model.request import Identity
from feedindex.domain.feed.port.callback import FeedIndexerCallback

logger = logging.getLogger(__name__)


class LoggingFeedIndexerCallback(FeedIndexerCallback):
    """Reports written and removed identities to logs and logfire."""

    def __init__(self, feed_name: str) -> None:
        self.feed_name = feed_name

    async def execute(self, entries: list[CallbackEntry], delete_ids: list[Identity]) -> None:
        merged = [entry for entry in entries if entry.attributes]
        logfire.info(
            "Feed updated",
            feed=self.feed_name,
            written=len(entries),
            merged=len(merged),
            deleted=len(delete_ids),
        )
        if delete_ids:
            logger.debug(
                f"Feed '{self.feed_name}' dropped ids: "
                f"{delete_ids[:5]}{'...' if len(delete_ids) > 5 else ''}"
            )
