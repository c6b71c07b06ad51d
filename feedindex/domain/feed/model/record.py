"""Feed records, the deep-overlay merge and callback entries."""

from collections.abc import Collection, Mapping
from typing import Any

from pydantic import Field

from feedindex.domain.feed.model.request import Identity, Scope
from feedindex.domain.shared.error import ValidationError
from feedindex.domain.shared.model.value import ValueObject

FeedRecord = dict[str, Any]

# scope -> identity -> stored record
ExistingFeedData = dict[Scope, dict[Identity, FeedRecord]]


def record_key(record: Mapping[str, Any], feed_identity: str, scope_field: str) -> tuple[Scope, Identity]:
    """Return the ``(scope, identity)`` address of a record."""
    try:
        return record[scope_field], record[feed_identity]
    except KeyError as e:
        raise ValidationError(
            f"Feed record is missing required field {e.args[0]!r}",
            field=str(e.args[0]),
        ) from e


def overlay(existing: Mapping[str, Any], new: Mapping[str, Any]) -> FeedRecord:
    """Deep-overlay ``new`` onto ``existing``.

    Nested mappings merge key by key. Any other value in ``new`` replaces the
    stored one wholesale. Keys only present in ``existing`` are kept.
    """
    merged: FeedRecord = dict(existing)
    for key, value in new.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = overlay(current, value)
        else:
            merged[key] = value
    return merged


def merge_records(
    existing: Mapping[str, Any],
    new: Mapping[str, Any],
    structural: Collection[str],
) -> FeedRecord:
    """Merge a freshly produced record over its stored version.

    Structural keys (identity, scope) are never overlaid: they are copied from
    ``new`` as-is.
    """
    merged = overlay(
        {k: v for k, v in existing.items() if k not in structural},
        {k: v for k, v in new.items() if k not in structural},
    )
    for key in structural:
        if key in new:
            merged[key] = new[key]
    return merged


def changed_attributes(record: Mapping[str, Any], skip: Collection[str]) -> list[str]:
    """Attribute codes of ``record`` worth reporting downstream."""
    return [code for code in record if code not in skip]


class CallbackEntry(ValueObject):
    """Summary of one written record for the downstream consumer."""

    identity: Identity
    store_view_code: Scope
    attributes: list[str] = Field(default_factory=list)
