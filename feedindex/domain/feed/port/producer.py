"""Port for the service computing feed records."""

from typing import Any, Protocol


class RecordProducer(Protocol):
    """Turns index requests into fully computed feed records.

    Identities may be omitted from the result; an omitted identity is no longer
    eligible for the feed. Must be idempotent for identical input.
    """

    async def produce(self, feed_name: str, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ...
