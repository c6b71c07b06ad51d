"""Port for the relational store holding the source and feed tables."""

from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from feedindex.domain.feed.model.request import Identity


@runtime_checkable
class FeedStore(Protocol):
    """Table-level operations the indexer needs from the database."""

    @abstractmethod
    async def fetch_ids_after(self, last_known_id: Identity, limit: int) -> list[Identity]:
        """Return up to ``limit`` source keys greater than ``last_known_id``, ascending."""
        ...

    @abstractmethod
    async def mark_removed(self, ids: Sequence[Identity]) -> int:
        """Flag feed rows in ``ids`` that have no source row. Returns rows touched."""
        ...

    @abstractmethod
    async def upsert(self, rows: list[dict[str, Any]]) -> int:
        """Insert rows, overwriting only the mutable columns on key conflict."""
        ...

    @abstractmethod
    async def truncate(self) -> None:
        """Remove every row of the feed table."""
        ...
