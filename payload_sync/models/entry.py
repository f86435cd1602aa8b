"""Pydantic models for Payload entries, normalized records and sync metadata."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def entry_id_to_str(value: Any) -> str:
    """Convert a raw Payload ``id`` value to the string key used by the store.

    Raises:
        ValueError: If the value is missing or is not a scalar
    """
    if value is None:
        raise ValueError("entry id is missing")
    if isinstance(value, (bool, dict, list, tuple, set)):
        raise ValueError(f"entry id must be a string or number, got {type(value).__name__}")
    result = str(value)
    if not result.strip():
        raise ValueError("entry id cannot be empty")
    return result


class RemoteEntry(BaseModel):
    """A single document returned by the Payload REST API.

    Only ``id`` is required; every other field is kept as returned.
    """

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "id": 42,
                "title": "Hello world",
                "slug": "hello-world",
                "updatedAt": "2024-01-15T14:30:00.000Z",
            }
        },
    )

    id: str = Field(default=..., description="Payload document id, converted to a string")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Accept numeric ids and convert them to strings."""
        return entry_id_to_str(v)


class PayloadResponse(BaseModel):
    """Envelope returned by ``GET /api/{collection}``.

    Entries stay untyped here; each one is validated by the entry pipeline so
    a bad entry fails on its own rather than rejecting the whole envelope.
    """

    model_config = ConfigDict(extra="allow")

    docs: list[Any] = Field(default=..., description="Ordered list of content entries")
    total_docs: int | None = Field(default=None, alias="totalDocs", ge=0)
    has_next_page: bool | None = Field(default=None, alias="hasNextPage")


class NormalizedRecord(BaseModel):
    """A parsed entry as written to the record store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default=..., min_length=1, description="Stable identifier within the collection")
    data: dict[str, Any] = Field(default_factory=dict, description="Parsed entry payload")
    digest: str = Field(default=..., min_length=1, description="Content digest of data")


class SyncMetadata(BaseModel):
    """Persisted per-collection sync state."""

    collection: str = Field(default=..., description="Payload collection slug")
    last_synced: datetime | None = Field(
        default=None, description="Start time of the last successful cycle"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "collection": "posts",
                "last_synced": "2024-01-15T14:30:00+00:00",
            }
        }
    )
