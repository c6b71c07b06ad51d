"""Port for reading stored feed records back."""

from collections.abc import Sequence
from typing import Any, Protocol

from feedindex.domain.feed.model.request import Identity


class FeedReader(Protocol):
    """Reads the current stored records of a feed."""

    async def read_by_ids(self, feed_name: str, ids: Sequence[Identity]) -> dict[str, list[dict[str, Any]]]:
        """Return ``{"feed": [record, ...]}`` for every live stored row of ``ids``."""
        ...
