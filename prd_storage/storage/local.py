"""
Local cache store.

Keeps the full record set for one record type as a JSON array under a
single key of a KeyValueBackend. Operations are synchronous and never
raise storage failures: a corrupted cache reads as empty and a failed
write is logged and skipped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from ..exceptions import RecordStorageError
from ..records.types import Record
from .kv import KeyValueBackend

logger = logging.getLogger(__name__)


class LocalCacheStore:
    """Client-local, always-available record cache keyed by record id.

    Records keep insertion order; ``upsert`` of an existing id replaces it
    in place.
    """

    def __init__(self, backend: KeyValueBackend, storage_key: str) -> None:
        """Initialize the cache.

        Args:
            backend: Durable key/value storage
            storage_key: Key holding this cache's record array
        """
        self.backend = backend
        self.storage_key = storage_key

    def list_all(self) -> list[Record]:
        """Every cached record in insertion order; empty on missing or corrupt data."""
        try:
            raw = self.backend.get_item(self.storage_key)
        except RecordStorageError as e:
            logger.warning(f"Could not read local cache '{self.storage_key}': {e}")
            return []

        if not raw:
            return []

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Local cache '{self.storage_key}' is corrupted, treating as empty: {e}")
            return []

        if not isinstance(entries, list):
            logger.warning(
                f"Local cache '{self.storage_key}' holds {type(entries).__name__}, "
                "expected a list; treating as empty"
            )
            return []

        records: list[Record] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                logger.warning(
                    f"Skipping {type(entry).__name__} entry in '{self.storage_key}'"
                )
                continue
            try:
                records.append(Record.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable entry in '{self.storage_key}': {e}")
        return records

    def get(self, record_id: str) -> Record | None:
        """Cached record for ``record_id``, or None."""
        for record in self.list_all():
            if record.id == record_id:
                return record
        return None

    def upsert(self, record: Record) -> Record:
        """Insert or replace by id and return the stored value."""
        records = self.list_all()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                break
        else:
            records.append(record)

        self._write(records)
        return record

    def delete(self, record_id: str) -> bool:
        """Remove a record; True if one was removed."""
        records = self.list_all()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False

        self._write(remaining)
        return True

    def clear(self) -> None:
        """Drop every cached record of this store."""
        try:
            self.backend.remove_item(self.storage_key)
        except RecordStorageError as e:
            logger.warning(f"Could not clear local cache '{self.storage_key}': {e}")

    def _write(self, records: list[Record]) -> None:
        """Persist the record array; failures degrade to a logged no-op."""
        try:
            serialized = json.dumps([r.to_dict() for r in records], default=_json_default)
            self.backend.set_item(self.storage_key, serialized)
        except (RecordStorageError, TypeError, ValueError) as e:
            logger.warning(f"Local cache write to '{self.storage_key}' skipped: {e}")


def _json_default(obj: Any) -> Any:
    """Serializer for payload values json does not handle natively."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
