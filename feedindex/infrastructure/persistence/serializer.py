"""JSON serializer mapping feed records to feed table rows."""

import json
from datetime import UTC, datetime
from typing import Any

from feedindex.domain.feed.model.metadata import FeedIndexMetadata
from feedindex.domain.feed.port.serializer import DataSerializer
from feedindex.domain.shared.error import ValidationError


class JsonDataSerializer(DataSerializer):
    """Stores the whole record as JSON next to its key columns.

    Row layout: ``feed_table_field`` (identity), ``scope_column`` (scope),
    ``data_column`` (JSON record), the soft-delete flag (cleared on every
    write) and, when the feed has a ``timestamp_column``, the write time.
    """

    def __init__(
        self,
        metadata: FeedIndexMetadata,
        *,
        scope_column: str = "store_view_code",
        data_column: str = "feed_data",
    ) -> None:
        self._metadata = metadata
        self._scope_column = scope_column
        self._data_column = data_column

    def serialize(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        now = datetime.now(UTC)
        timestamp_column = self._metadata.timestamp_column
        rows = []
        for record in records:
            try:
                identity = record[self._metadata.feed_identity]
                scope = record[self._metadata.scope_field]
            except KeyError as e:
                raise ValidationError(
                    f"Feed record is missing required field {e.args[0]!r}",
                    field=str(e.args[0]),
                ) from e
            row = {
                self._metadata.feed_table_field: identity,
                self._scope_column: scope,
                self._data_column: json.dumps(record, sort_keys=True, default=str),
                self._metadata.soft_delete_column: False,
            }
            if timestamp_column:
                row[timestamp_column] = now
            rows.append(row)
        return rows

    def deserialize(self, row: dict[str, Any]) -> dict[str, Any]:
        data = row[self._data_column]
        record = json.loads(data) if isinstance(data, (str, bytes)) else dict(data)
        record.setdefault(self._metadata.feed_identity, row[self._metadata.feed_table_field])
        record.setdefault(self._metadata.scope_field, row[self._scope_column])
        return record

    @property
    def scope_column(self) -> str:
        return self._scope_column
