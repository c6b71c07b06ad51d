"""Port for encoding feed records into table rows."""

from typing import Any, Protocol


class DataSerializer(Protocol):
    def serialize(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Encode records into rows of the feed table."""
        ...

    def deserialize(self, row: dict[str, Any]) -> dict[str, Any]:
        """Decode a feed table row back into a record."""
        ...
