"""Validation of raw Payload entries into store payloads."""

from typing import Any, Mapping

import structlog
from pydantic import BaseModel, ValidationError

from payload_sync.errors import EntryValidationError
from payload_sync.models.entry import RemoteEntry

log = structlog.stdlib.get_logger()


class EntryParser:
    """Turns ``{"id": ..., "data": entry}`` into a validated payload dict.

    Every entry is first checked against :class:`RemoteEntry`. When a schema
    is given the entry is also validated against it, and the schema's JSON
    dump becomes the stored payload.
    """

    def __init__(self, schema: type[BaseModel] | None = None):
        self._schema = schema

    def __call__(self, item: Mapping[str, Any]) -> dict[str, Any]:
        """
        Parse a single entry.

        Args:
            item: Mapping with the derived ``id`` and the raw ``data``

        Returns:
            JSON-compatible payload for the record store

        Raises:
            EntryValidationError: If the entry does not validate
        """
        entry_id = item.get("id")
        data = item.get("data")

        if not isinstance(data, Mapping):
            raise EntryValidationError(
                f"Entry {entry_id} is not an object (got {type(data).__name__})",
                entry_id=entry_id,
            )

        try:
            entry = RemoteEntry.model_validate(dict(data))
            if self._schema is None:
                return entry.model_dump(mode="json")

            parsed = self._schema.model_validate(dict(data))
            return parsed.model_dump(mode="json")
        except ValidationError as e:
            log.warning(
                "entry_validation_failed",
                entry_id=entry_id,
                error_count=e.error_count(),
            )
            raise EntryValidationError(f"Entry {entry_id} failed validation: {e}", entry_id=entry_id) from e
