"""Unit tests for Reconciler."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from feedindex.domain.feed.model.record import CallbackEntry
from feedindex.domain.feed.model.registry import FeedPool
from feedindex.domain.feed.model.request import FullRecompute, PartialRecompute
from feedindex.domain.feed.service.fetcher import ExistingDataFetcher
from feedindex.domain.feed.service.reconciler import Reconciler


class PassThroughSerializer:
    def serialize(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [dict(r) for r in records]

    def deserialize(self, row: dict[str, Any]) -> dict[str, Any]:
        return row


def _reader(stored: list[dict[str, Any]]) -> MagicMock:
    reader = MagicMock()
    reader.read_by_ids = AsyncMock(return_value={"feed": stored})
    return reader


def _store() -> MagicMock:
    store = MagicMock()
    store.upsert = AsyncMock(side_effect=lambda rows: len(rows))
    return store


def _reconciler(feed_metadata, producer, callback, store, reader=None, skip=()) -> Reconciler:
    pool = FeedPool({feed_metadata.feed_name: reader or _reader([])})
    return Reconciler(
        metadata=feed_metadata,
        store=store,
        producer=producer,
        fetcher=ExistingDataFetcher(metadata=feed_metadata, feed_pool=pool),
        serializer=PassThroughSerializer(),
        callback=callback,
        callback_skip_attributes=skip,
    )


def _record(pid: int, store: str = "default", **attrs: Any) -> dict[str, Any]:
    return {"productId": pid, "storeViewCode": store, **attrs}


class TestProcess:
    @pytest.mark.asyncio
    async def test_partial_change_merges_with_stored_record(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, "A", x=9, y=5)]}
        reader = _reader([_record(1, "A", x=1, y=2)])
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store, reader)

        await reconciler.process([PartialRecompute(identity=1, attribute_ids=("x",))])

        written = store.upsert.call_args[0][0]
        assert written == [_record(1, "A", x=9, y=2)]
        entries, delete_ids = callback.calls[0]
        assert entries == [CallbackEntry(identity=1, store_view_code="A", attributes=["x"])]
        assert delete_ids == []

    @pytest.mark.asyncio
    async def test_callback_attributes_exclude_configured_skip_list(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, "A", x=9, modifiedAt="t")]}
        reader = _reader([_record(1, "A", x=1)])
        reconciler = _reconciler(feed_metadata, producer, callback, _store(), reader, skip=("modifiedAt",))

        await reconciler.process([PartialRecompute(identity=1, attribute_ids=("x", "modifiedAt"))])

        entries, _ = callback.calls[0]
        assert entries[0].attributes == ["x"]

    @pytest.mark.asyncio
    async def test_fresh_records_report_no_attributes(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, x=1)]}
        reader = _reader([])
        reconciler = _reconciler(feed_metadata, producer, callback, _store(), reader)

        await reconciler.process([FullRecompute(identity=1)])

        entries, _ = callback.calls[0]
        assert entries == [CallbackEntry(identity=1, store_view_code="default")]
        reader.read_by_ids.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_partial_ids_are_fetched_for_merge(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, x=1)], 2: [_record(2, x=2)]}
        reader = _reader([_record(2, y=8)])
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store, reader)

        await reconciler.process(
            [FullRecompute(identity=1), PartialRecompute(identity=2, attribute_ids=("x",))]
        )

        reader.read_by_ids.assert_awaited_once_with("products", [2])
        written = store.upsert.call_args[0][0]
        assert written == [_record(1, x=1), _record(2, x=2, y=8)]

    @pytest.mark.asyncio
    async def test_omitted_identities_are_deleted(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1)], 2: [_record(2)]}
        reconciler = _reconciler(feed_metadata, producer, callback, _store())

        await reconciler.process([FullRecompute(identity=i) for i in (1, 2, 3)])

        _, delete_ids = callback.calls[0]
        assert delete_ids == [3]

    @pytest.mark.asyncio
    async def test_string_ids_match_written_int_ids(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1)]}
        reconciler = _reconciler(feed_metadata, producer, callback, _store())

        await reconciler.process([FullRecompute(identity="1"), FullRecompute(identity="4")])

        _, delete_ids = callback.calls[0]
        assert delete_ids == ["4"]

    @pytest.mark.asyncio
    async def test_writes_in_chunks_of_batch_size(self, feed_metadata, producer, callback):
        producer.catalog = {i: [_record(i)] for i in range(1, 6)}
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store)

        await reconciler.process([FullRecompute(identity=i) for i in range(1, 6)])

        chunks = [call[0][0] for call in store.upsert.call_args_list]
        assert [[r["productId"] for r in chunk] for chunk in chunks] == [[1, 2], [3, 4], [5]]
        assert len(callback.calls) == 1

    @pytest.mark.asyncio
    async def test_one_identity_many_store_views(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, "A"), _record(1, "B")]}
        reconciler = _reconciler(feed_metadata, producer, callback, _store())

        await reconciler.process([FullRecompute(identity=1)])

        entries, delete_ids = callback.calls[0]
        assert [(e.identity, e.store_view_code) for e in entries] == [(1, "A"), (1, "B")]
        assert delete_ids == []

    @pytest.mark.asyncio
    async def test_empty_requests_do_nothing(self, feed_metadata, producer, callback):
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store)

        await reconciler.process([])

        producer.produce.assert_not_called()
        store.upsert.assert_not_called()
        assert callback.calls == []

    @pytest.mark.asyncio
    async def test_failed_chunk_keeps_earlier_chunks_and_skips_callback(
        self, feed_metadata, producer, callback
    ):
        producer.catalog = {i: [_record(i)] for i in range(1, 5)}
        store = _store()
        store.upsert = AsyncMock(side_effect=[2, RuntimeError("connection lost")])
        reconciler = _reconciler(feed_metadata, producer, callback, store)

        with pytest.raises(RuntimeError, match="connection lost"):
            await reconciler.process([FullRecompute(identity=i) for i in range(1, 5)])

        assert store.upsert.await_count == 2
        assert callback.calls == []

    @pytest.mark.asyncio
    async def test_producer_error_propagates(self, feed_metadata, producer, callback):
        producer.produce.side_effect = ValueError("export failed")
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store)

        with pytest.raises(ValueError, match="export failed"):
            await reconciler.process([FullRecompute(identity=1)])

        store.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_repeated_partial_changes_accumulate(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, "A", x=9, y=7, z=0)]}
        reader = _reader([_record(1, "A", x=1, y=2, z=3)])
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store, reader)

        await reconciler.process(
            [
                PartialRecompute(identity=1, attribute_ids=("x",)),
                PartialRecompute(identity="1", attribute_ids=("y",)),
            ]
        )

        (written,) = [call[0][0] for call in store.upsert.call_args_list]
        assert written == [_record(1, "A", x=9, y=7, z=3)]
        entries, delete_ids = callback.calls[0]
        assert entries == [CallbackEntry(identity=1, store_view_code="A", attributes=["x", "y"])]
        assert delete_ids == []

    @pytest.mark.asyncio
    async def test_duplicate_full_requests_write_one_row(self, feed_metadata, producer, callback):
        producer.catalog = {1: [_record(1, "A", x=1)], 2: [_record(2, "A", x=2)]}
        store = _store()
        reconciler = _reconciler(feed_metadata, producer, callback, store)

        await reconciler.process([FullRecompute(identity=i) for i in (1, 2, 1)])

        written = [row for call in store.upsert.call_args_list for row in call[0][0]]
        assert written == [_record(1, "A", x=1), _record(2, "A", x=2)]
        entries, _ = callback.calls[0]
        assert entries == [
            CallbackEntry(identity=1, store_view_code="A"),
            CallbackEntry(identity=2, store_view_code="A"),
        ]
