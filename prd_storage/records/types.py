"""
Record types.

A Record is the unit of persisted data: a PRD or a feature, addressed by a
client-generated id and owned by a parent (brief or feature set). The
payload is an opaque mapping; storage layers never look inside it beyond
a shallow key-level merge.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (or pass a datetime through) as aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def merge_payload(existing: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow merge: keys in ``changes`` replace keys in ``existing``."""
    merged = dict(existing)
    merged.update(changes)
    return merged


@dataclass
class Record:
    """A persisted PRD or feature.

    Attributes:
        id: Client-generated unique id, immutable once assigned
        parent_id: Owning brief / feature-set id
        payload: Opaque document content
        created_at: Creation time (UTC)
        updated_at: Last successful write (UTC)
    """

    id: str
    parent_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def touch(self) -> Record:
        """Return a copy with ``updated_at`` advanced to now."""
        return replace(self, payload=dict(self.payload), updated_at=utc_now())

    def with_payload(self, payload: Mapping[str, Any]) -> Record:
        """Return a copy carrying ``payload`` and a fresh ``updated_at``."""
        return replace(self, payload=dict(payload), updated_at=utc_now())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the cache format (camelCase keys)."""
        return {
            "id": self.id,
            "parentId": self.parent_id,
            "payload": self.payload,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Record:
        """Deserialize from camelCase (cache) or snake_case (remote) keys.

        Raises:
            KeyError: If id or parent id are missing
            ValueError: If a timestamp or the payload is malformed
        """
        payload = data.get("payload")
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"Record payload must be a mapping, got {type(payload).__name__}")

        parent_id = data["parentId"] if "parentId" in data else data["parent_id"]
        created = data.get("createdAt", data.get("created_at"))
        updated = data.get("updatedAt", data.get("updated_at"))

        created_at = parse_timestamp(created) if created else utc_now()
        updated_at = parse_timestamp(updated) if updated else created_at

        return cls(
            id=str(data["id"]),
            parent_id=str(parent_id),
            payload=dict(payload),
            created_at=created_at,
            updated_at=updated_at,
        )


def new_record(
    parent_id: str,
    payload: Mapping[str, Any],
    record_id: str | None = None,
) -> Record:
    """Create a record with a fresh id and matching created/updated timestamps."""
    now = utc_now()
    return Record(
        id=record_id or str(uuid.uuid4()),
        parent_id=parent_id,
        payload=dict(payload),
        created_at=now,
        updated_at=now,
    )
