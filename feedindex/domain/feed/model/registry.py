"""Feed pool - typed container of feed readers keyed by feed name."""

from collections.abc import Iterator

from feedindex.domain.feed.port.feed_reader import FeedReader
from feedindex.domain.shared.error import NotFoundError


class FeedPool:
    """Registry of readers able to return stored records of a feed."""

    def __init__(self, feeds: dict[str, FeedReader]) -> None:
        self._feeds = feeds

    def get(self, name: str) -> FeedReader | None:
        """Get a feed reader by name."""
        return self._feeds.get(name)

    def get_feed(self, name: str) -> FeedReader:
        """Get a feed reader by name, failing if it is not registered."""
        feed = self._feeds.get(name)
        if feed is None:
            raise NotFoundError(f"Feed not registered: {name}")
        return feed

    def __contains__(self, name: str) -> bool:
        return name in self._feeds

    def __iter__(self) -> Iterator[str]:
        return iter(self._feeds)

    def __len__(self) -> int:
        return len(self._feeds)

    def names(self) -> list[str]:
        """List all registered feed names."""
        return list(self._feeds.keys())
