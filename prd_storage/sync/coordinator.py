"""
Sync coordinator: the single entry point for record reads and writes.

Mediates between the authoritative remote store and the local cache:

- Reads prefer the remote copy when it is reachable and has the record;
  the local cache fills gaps and answers when the remote is down.
- Writes land in the local cache before any network attempt, so a
  write is never lost to a remote failure.
- Remote failures (network, auth, timeout, unexpected errors) are logged
  and downgraded to the local result. Only validation errors and genuine
  not-found conditions reach the caller.

Concurrent calls are not ordered: when two writes for the same id race,
the last remote response to arrive determines the cached state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping
from typing import Any, TypeVar

from ..exceptions import RecordNotFoundError, RemoteTimeoutError, ValidationError
from ..identity.provider import IdentityProvider
from ..logging_utils import StorageLoggerAdapter
from ..records.types import Record, merge_payload
from ..storage.base import DEFAULT_REMOTE_TIMEOUT, RemoteRecordStore, StorageConfig
from ..storage.kv import FileKeyValueBackend
from ..storage.local import LocalCacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncCoordinator:
    """Fallback-and-merge policy over a local cache and a remote store.

    Callers never address either store directly. Construct one instance
    per process/session and pass it to whoever needs record access.
    """

    def __init__(
        self,
        local: LocalCacheStore,
        remote: RemoteRecordStore,
        remote_timeout: float | None = DEFAULT_REMOTE_TIMEOUT,
        record_type: str = "record",
    ) -> None:
        """Initialize the coordinator.

        Args:
            local: Local cache store
            remote: Remote record store
            remote_timeout: Seconds before a remote call is treated as a
                network failure (None disables the timeout)
            record_type: Label used in log context and not-found errors
        """
        self.local = local
        self.remote = remote
        self.remote_timeout = remote_timeout
        self.record_type = record_type
        self._log = StorageLoggerAdapter(logger, {"record_type": record_type})

    async def _remote_call(self, operation: str, call: Awaitable[T]) -> T:
        """Await a remote call under the configured timeout."""
        if self.remote_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.remote_timeout)
        except TimeoutError as e:
            target = f"{self.remote.endpoint}:{operation}"
            raise RemoteTimeoutError(target, self.remote_timeout) from e

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_by_parent(self, parent_id: str) -> list[Record]:
        """Records owned by ``parent_id``: remote set plus local-only records.

        Remote copies win on id collision. Remote records come first in the
        order returned, followed by local-only records in cache order.
        """
        try:
            remote_records = await self._remote_call(
                "query_by_parent", self.remote.query_by_parent(parent_id)
            )
        except Exception as e:
            self._log.warning(f"Remote query for parent {parent_id} failed, using local cache: {e}")
            remote_records = []

        merged: list[Record] = []
        seen: set[str] = set()
        for record in remote_records:
            if record.id not in seen:
                seen.add(record.id)
                merged.append(record)

        local_only = 0
        for record in self.local.list_all():
            if record.parent_id == parent_id and record.id not in seen:
                seen.add(record.id)
                merged.append(record)
                local_only += 1

        self._log.debug(
            f"Found {len(merged)} records for parent {parent_id} "
            f"({len(merged) - local_only} remote, {local_only} local-only)"
        )
        return merged

    async def get_by_id(self, record_id: str, required: bool = False) -> Record | None:
        """Fetch one record, preferring the remote copy.

        A remote hit is written through to the local cache.

        Args:
            record_id: Record id
            required: Raise instead of returning None when both stores lack it

        Raises:
            RecordNotFoundError: If ``required`` and the record exists nowhere
        """
        local_record = self.local.get(record_id)

        try:
            remote_record = await self._remote_call("get", self.remote.get(record_id))
        except Exception as e:
            self._log.warning(f"Remote get for {record_id} failed, using local cache: {e}")
            remote_record = None

        if remote_record is not None:
            self.local.upsert(remote_record)
            return remote_record

        if local_record is not None:
            self._log.debug(f"Record {record_id} served from local cache")
            return local_record

        if required:
            raise RecordNotFoundError(record_id, self.record_type)
        return None

    # =========================================================================
    # Writes
    # =========================================================================

    async def save(self, record: Record) -> Record:
        """Create or replace a record.

        The record is cached locally first, then pushed to the remote
        (update if the id exists remotely, create otherwise). The
        remote-returned shape is cached on success; on remote failure the
        locally saved record is returned. No automatic retry: calling
        ``save`` again is safe.

        Raises:
            ValidationError: If id, parent_id or payload are missing
        """
        _validate_record(record)

        saved = self.local.upsert(record.touch())

        try:
            if await self._remote_call("exists", self.remote.exists(saved.id)):
                remote_record = await self._remote_call(
                    "update", self.remote.update(saved.id, dict(saved.payload))
                )
            else:
                remote_record = await self._remote_call("create", self.remote.create(saved))
        except Exception as e:
            self._log.warning(f"Remote save for {saved.id} failed, kept local copy: {e}")
            return saved

        self.local.upsert(remote_record)
        return remote_record

    async def update(self, record_id: str, partial_payload: Mapping[str, Any]) -> Record:
        """Shallow-merge ``partial_payload`` into an existing record.

        Raises:
            ValidationError: If ``partial_payload`` is not a mapping
            RecordNotFoundError: If the record exists in neither store
        """
        if not isinstance(partial_payload, Mapping):
            raise ValidationError(
                "partial_payload", "must be a mapping", type(partial_payload).__name__
            )
        changes = dict(partial_payload)

        base = self.local.get(record_id)
        if base is None:
            try:
                base = await self._remote_call("get", self.remote.get(record_id))
            except Exception as e:
                self._log.warning(f"Remote lookup for {record_id} failed during update: {e}")
                base = None
        if base is None:
            raise RecordNotFoundError(record_id, self.record_type)

        merged = self.local.upsert(base.with_payload(merge_payload(base.payload, changes)))

        try:
            remote_record = await self._remote_call(
                "update", self.remote.update(record_id, changes)
            )
        except Exception as e:
            self._log.warning(f"Remote update for {record_id} failed, kept local merge: {e}")
            return merged

        self.local.upsert(remote_record)
        return remote_record

    async def delete(self, record_id: str) -> bool:
        """Delete from both stores independently.

        Returns:
            True if the record was removed from at least one store
        """
        local_existed = self.local.delete(record_id)

        try:
            await self._remote_call("delete", self.remote.delete(record_id))
            remote_deleted = True
        except RecordNotFoundError:
            remote_deleted = False
        except Exception as e:
            self._log.warning(f"Remote delete for {record_id} failed: {e}")
            remote_deleted = False

        return local_existed or remote_deleted

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Close the remote store."""
        await self.remote.close()

    async def __aenter__(self) -> SyncCoordinator:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _validate_record(record: Record) -> None:
    """Required-field check performed before touching either store."""
    if not isinstance(getattr(record, "id", None), str) or not record.id:
        raise ValidationError("id", "required")
    if not isinstance(getattr(record, "parent_id", None), str) or not record.parent_id:
        raise ValidationError("parent_id", "required")
    if getattr(record, "payload", None) is None:
        raise ValidationError("payload", "required")
    if not isinstance(record.payload, Mapping):
        raise ValidationError("payload", "must be a mapping", type(record.payload).__name__)


def cache_key(record_type: str) -> str:
    """Local cache key for a record type."""
    return f"prd-storage-{record_type}s"


def build_coordinator(
    config: StorageConfig,
    identity_provider: IdentityProvider,
    record_type: str,
) -> SyncCoordinator:
    """Wire a file-backed local cache and a Cosmos DB remote store."""
    from ..storage.cosmos import CosmosRecordStore

    backend = FileKeyValueBackend(config.local_directory, config.local_capacity_bytes)
    local = LocalCacheStore(backend, cache_key(record_type))
    remote = CosmosRecordStore(config, identity_provider, record_type)
    return SyncCoordinator(local, remote, config.remote_timeout, record_type)
