"""Port for the downstream consumer notified after each indexing call."""

from typing import Protocol

from feedindex.domain.feed.model.record import CallbackEntry
from feedindex.domain.feed.model.request import Identity


class FeedIndexerCallback(Protocol):
    async def execute(self, entries: list[CallbackEntry], delete_ids: list[Identity]) -> None:
        """Receive written records and identities that left the feed."""
        ...
