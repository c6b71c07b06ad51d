from feedindex.domain.feed.port.callback import FeedIndexerCallback
from feedindex.domain.feed.port.feed_reader import FeedReader
from feedindex.domain.feed.port.feed_store import FeedStore
from feedindex.domain.feed.port.producer import RecordProducer
from feedindex.domain.feed.port.serializer import DataSerializer

__all__ = [
    "DataSerializer",
    "FeedIndexerCallback",
    "FeedReader",
    "FeedStore",
    "RecordProducer",
]
