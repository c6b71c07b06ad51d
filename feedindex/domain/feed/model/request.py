"""Index requests - one unit of work handed to the record producer.

A request is either a full recompute of an identity or a partial recompute
limited to a set of changed attributes. The shape is decided once, when raw
change records enter the indexer, so downstream code never inspects raw input.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import Field

from feedindex.domain.shared.error import ValidationError
from feedindex.domain.shared.model.value import ValueObject

Identity = int | str
Scope = int | str | None

# Scope of a request that names no store. Distinct from store 0 and "".
NO_SCOPE: Scope = None


class FullRecompute(ValueObject):
    """Recompute every field of the identity."""

    kind: Literal["full"] = "full"
    identity: Identity
    scope_id: Scope = NO_SCOPE

    @property
    def is_partial(self) -> bool:
        return False

    def to_payload(self, feed_identity: str) -> dict[str, Any]:
        payload: dict[str, Any] = {feed_identity: self.identity}
        if self.scope_id is not NO_SCOPE:
            payload["scopeId"] = self.scope_id
        return payload


class PartialRecompute(ValueObject):
    """Recompute only ``attribute_ids``; the rest is merged from the stored record."""

    kind: Literal["partial"] = "partial"
    identity: Identity
    attribute_ids: tuple[str, ...] = Field(min_length=1)
    scope_id: Scope = NO_SCOPE

    @property
    def is_partial(self) -> bool:
        return True

    def to_payload(self, feed_identity: str) -> dict[str, Any]:
        return {
            feed_identity: self.identity,
            "attribute_ids": list(self.attribute_ids),
            "scopeId": self.scope_id,
        }


IndexRequest = Annotated[Union[FullRecompute, PartialRecompute], Field(discriminator="kind")]


def parse_attribute_ids(raw: Any) -> tuple[str, ...]:
    """Split a comma-separated attribute list, dropping blanks and duplicates."""
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = [str(part) for part in raw]
    else:
        raise ValidationError(
            f"attribute_ids must be a comma-separated string, got {type(raw).__name__}",
            field="attribute_ids",
        )
    return tuple(dict.fromkeys(part.strip() for part in parts if part.strip()))


def parse_change(change: Identity | Mapping[str, Any]) -> IndexRequest:
    """Build a request from a bare identity or a change-tracking record.

    Change records carry ``entity_id``, an optional comma-separated
    ``attribute_ids`` and an optional ``store_id``.

    Raises:
        ValidationError: If the record has no ``entity_id`` or malformed hints.
    """
    if not isinstance(change, Mapping):
        if change is None or isinstance(change, bool):
            raise ValidationError(f"Invalid identity: {change!r}", field="entity_id")
        return FullRecompute(identity=change)

    entity_id = change.get("entity_id")
    if entity_id is None or entity_id == "":
        raise ValidationError("Change record is missing entity_id", field="entity_id")

    attribute_ids = parse_attribute_ids(change.get("attribute_ids"))
    scope_id = change.get("store_id", NO_SCOPE)
    if attribute_ids:
        return PartialRecompute(identity=entity_id, attribute_ids=attribute_ids, scope_id=scope_id)
    return FullRecompute(identity=entity_id, scope_id=scope_id)


def full_recompute(ids: list[Identity]) -> list[IndexRequest]:
    return [FullRecompute(identity=identity) for identity in ids]
