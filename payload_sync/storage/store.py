"""Record and metadata store interfaces and implementations."""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator

import structlog

from payload_sync.models.config import StoreConfig
from payload_sync.models.entry import NormalizedRecord

log = structlog.stdlib.get_logger()


class RecordStore(ABC):
    """Abstract interface for the keyed record store.

    Implementations compare digests on upsert, so writing an unchanged record
    is a no-op.
    """

    @abstractmethod
    def upsert(self, record: NormalizedRecord) -> bool:
        """Insert or update a record keyed by its id.

        Args:
            record: Record to write

        Returns:
            True if the record was written, False if the stored digest matched

        Raises:
            RuntimeError: If the write fails
        """
        pass

    @abstractmethod
    def get(self, record_id: str) -> NormalizedRecord | None:
        """Return the stored record for an id, or None."""
        pass

    @abstractmethod
    def ids(self) -> list[str]:
        """Return the ids of all stored records."""
        pass


class MetadataStore(ABC):
    """Abstract interface for small per-collection key/value metadata."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class InMemoryStore(RecordStore):
    """Dictionary-backed store, used for tests and one-shot runs."""

    def __init__(self, collection: str = "default"):
        self.collection = collection
        self._records: dict[str, NormalizedRecord] = {}
        self._meta: dict[str, str] = {}
        self.meta = _InMemoryMetadata(self._meta)

    def upsert(self, record: NormalizedRecord) -> bool:
        existing = self._records.get(record.id)
        if existing is not None and existing.digest == record.digest:
            log.debug("record_unchanged", collection=self.collection, record_id=record.id)
            return False
        self._records[record.id] = record
        return True

    def get(self, record_id: str) -> NormalizedRecord | None:
        return self._records.get(record_id)

    def ids(self) -> list[str]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[NormalizedRecord]:
        return iter(list(self._records.values()))


class _InMemoryMetadata(MetadataStore):
    def __init__(self, values: dict[str, str]):
        self._values = values

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStore(RecordStore):
    """Persistent store backed by a single JSON file.

    The file holds one namespace per collection::

        {"posts": {"records": {"1": {"data": {...}, "digest": "..."}},
                   "meta": {"lastSynced": "..."}}}

    Every write rewrites the file through a temporary file and ``os.replace``
    so readers never see a partially written document.
    """

    # Guards read-modify-write of the shared file across collections
    _file_locks: dict[str, threading.Lock] = {}
    _file_locks_guard = threading.Lock()

    def __init__(self, path: str, collection: str):
        """Initialize JSON file store.

        Args:
            path: Location of the JSON file (created on first write)
            collection: Namespace within the file

        Raises:
            RuntimeError: If an existing file cannot be read
        """
        self._path = Path(path)
        self.collection = collection
        self.meta = _JsonFileMetadata(self)

        with self._file_locks_guard:
            self._lock = self._file_locks.setdefault(str(self._path.resolve()), threading.Lock())

        # Fail early on a corrupt file
        self._read()
        log.info("json_file_store_initialized", path=str(self._path), collection=collection)

    @property
    def path(self) -> Path:
        return self._path

    def upsert(self, record: NormalizedRecord) -> bool:
        with self._lock:
            document = self._read()
            namespace = self._namespace(document)
            existing = namespace["records"].get(record.id)
            if existing is not None and existing.get("digest") == record.digest:
                log.debug("record_unchanged", collection=self.collection, record_id=record.id)
                return False

            namespace["records"][record.id] = {"data": record.data, "digest": record.digest}
            self._write(document)
            return True

    def get(self, record_id: str) -> NormalizedRecord | None:
        raw = self._namespace(self._read())["records"].get(record_id)
        if raw is None:
            return None
        return NormalizedRecord(id=record_id, data=raw.get("data", {}), digest=raw["digest"])

    def ids(self) -> list[str]:
        return list(self._namespace(self._read())["records"])

    def get_meta(self, key: str) -> str | None:
        return self._namespace(self._read())["meta"].get(key)

    def set_meta(self, key: str, value: str) -> None:
        with self._lock:
            document = self._read()
            self._namespace(document)["meta"][key] = value
            self._write(document)

    def _namespace(self, document: dict[str, Any]) -> dict[str, Any]:
        namespace = document.setdefault(self.collection, {})
        namespace.setdefault("records", {})
        namespace.setdefault("meta", {})
        return namespace

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            log.error("json_file_store_read_failed", path=str(self._path), error=str(e))
            raise RuntimeError(f"Failed to read store file {self._path}: {e}") from e

        if not isinstance(document, dict):
            raise RuntimeError(f"Store file {self._path} does not contain a JSON object")
        return document

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            log.error("json_file_store_write_failed", path=str(self._path), error=str(e))
            raise RuntimeError(f"Failed to write store file {self._path}: {e}") from e


class _JsonFileMetadata(MetadataStore):
    def __init__(self, store: JsonFileStore):
        self._store = store

    def get(self, key: str) -> str | None:
        return self._store.get_meta(key)

    def set(self, key: str, value: str) -> None:
        self._store.set_meta(key, value)


def build_store(config: StoreConfig, collection: str) -> InMemoryStore | JsonFileStore:
    """Create the store configured for a collection.

    Args:
        config: Store configuration
        collection: Collection namespace

    Returns:
        JsonFileStore when a path is configured, InMemoryStore otherwise
    """
    if config.path:
        return JsonFileStore(config.path, collection)

    log.warning("using_in_memory_store", collection=collection)
    return InMemoryStore(collection)
