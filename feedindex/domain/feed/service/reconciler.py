"""Reconciler - merges produced records into the feed table and reports the diff."""

import logging
from collections.abc import Sequence
from dataclasses import field

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.model.record import (
    CallbackEntry,
    ExistingFeedData,
    FeedRecord,
    changed_attributes,
    merge_records,
    record_key,
)
from feedindex.domain.feed.model.request import Identity, IndexRequest, Scope
from feedindex.domain.feed.port.callback import FeedIndexerCallback
from feedindex.domain.feed.port.feed_store import FeedStore
from feedindex.domain.feed.port.producer import RecordProducer
from feedindex.domain.feed.port.serializer import DataSerializer
from feedindex.domain.feed.service.fetcher import ExistingDataFetcher
from feedindex.domain.shared.service import Service

logger = logging.getLogger(__name__)


class Reconciler(Service):
    """Writes the producer's output for a set of requests, chunk by chunk.

    Records produced for partial requests are merged over their stored version
    so attributes outside the change survive. Requested identities the producer
    did not return are reported for deletion. Each chunk is committed on its
    own; a failure leaves earlier chunks in place.
    """

    metadata: FeedIndexMetadata
    store: FeedStore
    producer: RecordProducer
    fetcher: ExistingDataFetcher
    serializer: DataSerializer
    callback: FeedIndexerCallback
    callback_skip_attributes: Sequence[str] = field(default_factory=tuple)

    @property
    def structural_fields(self) -> tuple[str, str]:
        return self.metadata.feed_identity, self.metadata.scope_field

    @property
    def skip_attributes(self) -> frozenset[str]:
        return frozenset(self.structural_fields) | frozenset(self.callback_skip_attributes)

    async def process(self, requests: Sequence[IndexRequest]) -> None:
        if not requests:
            logger.debug(f"Nothing to process for feed '{self.metadata.feed_name}'")
            return

        feed_identity = self.metadata.feed_identity
        records = await self.producer.produce(
            self.metadata.feed_name,
            [request.to_payload(feed_identity) for request in requests],
        )

        partial_ids = [request.identity for request in requests if request.is_partial]
        existing: ExistingFeedData = {}
        if partial_ids:
            existing = await self.fetcher.fetch(partial_ids)

        prepared = self.fold_records(records, existing)
        entries = [entry for _, entry in prepared]
        batch_size = self.metadata.batch_size
        for start in range(0, len(prepared), batch_size):
            chunk = [record for record, _ in prepared[start : start + batch_size]]
            written = await self.store.upsert(self.serializer.serialize(chunk))
            logger.debug(f"Upserted chunk of {len(chunk)} records ({written} rows affected)")

        delete_ids = self.compute_delete_ids(requests, entries)
        await self.callback.execute(entries, delete_ids)

        logger.info(
            f"Feed '{self.metadata.feed_name}': {len(requests)} requests, "
            f"{len(entries)} records written, {len(delete_ids)} removed"
        )

    def fold_records(
        self,
        records: Sequence[FeedRecord],
        existing: ExistingFeedData,
    ) -> list[tuple[FeedRecord, CallbackEntry]]:
        """Merge records with their stored versions, one result per ``(scope, identity)``.

        A record whose address was already produced in this call is merged over
        that earlier result instead of the stored snapshot and keeps its
        position. The callback entry then lists the attributes of both.
        """
        folded: dict[tuple[Scope, str], tuple[FeedRecord, CallbackEntry]] = {}
        fresh: set[tuple[Scope, str]] = set()
        for record in records:
            scope, identity = record_key(record, self.metadata.feed_identity, self.metadata.scope_field)
            address = (scope, str(identity))

            if address in folded:
                base, entry = folded[address]
            else:
                base = self.fetcher.lookup(existing, record)
                entry = CallbackEntry(identity=identity, store_view_code=scope)
                if base is None:
                    fresh.add(address)

            if address not in fresh:
                attributes = list(entry.attributes)
                attributes += [
                    code for code in changed_attributes(record, self.skip_attributes) if code not in attributes
                ]
                entry = entry.model_copy(update={"attributes": attributes})
            if base is not None:
                record = merge_records(base, record, self.structural_fields)

            folded[address] = (record, entry)
        return list(folded.values())

    def compute_delete_ids(
        self,
        requests: Sequence[IndexRequest],
        entries: Sequence[CallbackEntry],
    ) -> list[Identity]:
        """Requested identities that were not written, in request order."""
        written = {str(entry.identity) for entry in entries}
        delete_ids: list[Identity] = []
        seen: set[str] = set()
        for request in requests:
            key = str(request.identity)
            if key in written or key in seen:
                continue
            seen.add(key)
            delete_ids.append(request.identity)
        return delete_ids
