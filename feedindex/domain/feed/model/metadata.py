"""FeedIndexMetadata - static description of one feed and its source."""

import re

from pydantic import Field, field_validator

from feedindex.domain.shared.model.value import ValueObject

_SQL_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def validate_sql_identifier(name: str) -> str:
    """Validate a string is a safe SQL table or column name."""
    if not _SQL_IDENTIFIER.match(name):
        raise ValueError(
            f"Invalid identifier: {name!r}. "
            "Must be alphanumeric/underscore, starting with a letter or underscore."
        )
    return name


class FeedIndexMetadata(ValueObject):
    """Configuration shared by every component indexing one feed.

    ``feed_identity`` is the logical key carried by source rows (as an alias of
    ``source_table_field``), index requests and feed records. ``feed_table_field``
    is the physical feed column holding the same value.

    ``source_table_field`` must be an integer column. Full scans page through
    it starting after key 0, so non-positive keys are never visited.
    """

    feed_name: str
    source_table_name: str
    source_table_field: str
    feed_table_name: str
    feed_table_field: str
    feed_table_mutable_columns: tuple[str, ...] = ("feed_data", "is_deleted", "modified_at")
    feed_identity: str
    batch_size: int = Field(default=100, gt=0)
    scope_field: str = "storeViewCode"
    soft_delete_column: str = "is_deleted"
    # Stamped on write, only moves when another mutable column changes
    timestamp_column: str | None = "modified_at"

    @field_validator(
        "source_table_name",
        "source_table_field",
        "feed_table_name",
        "feed_table_field",
        "soft_delete_column",
    )
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        return validate_sql_identifier(value)

    @field_validator("feed_table_mutable_columns", mode="before")
    @classmethod
    def _dedupe_columns(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            columns = tuple(dict.fromkeys(value))
            for column in columns:
                validate_sql_identifier(column)
            return columns
        return value

    @field_validator("timestamp_column")
    @classmethod
    def _check_optional_identifier(cls, value: str | None) -> str | None:
        return None if value is None else validate_sql_identifier(value)
