"""
Shared test configuration and fixtures.

Provides in-memory stand-ins for the remote record store and the
completion service so tests run without Cosmos DB or OpenAI access.
The remote fake can be switched offline, made to reject the caller,
or slowed down to exercise the coordinator's fallback paths.
"""

import asyncio
import logging
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from prd_storage.exceptions import (
    AuthenticationError,
    RecordExistsError,
    RecordNotFoundError,
    StorageConnectionError,
)
from prd_storage.generation import CompletionOptions, CompletionService
from prd_storage.records import Record, merge_payload, utc_now
from prd_storage.storage import LocalCacheStore, MemoryKeyValueBackend, RemoteRecordStore
from prd_storage.sync import SyncCoordinator

logger = logging.getLogger(__name__)


class InMemoryRemoteStore(RemoteRecordStore):
    """
    Remote record store held in a dict.

    Switches:
        offline: every call raises StorageConnectionError
        unauthenticated: every call raises AuthenticationError
        delay: seconds to sleep before answering
        normalize: stamp ``serverNormalized`` into stored payloads
        failure: exception instance raised by every call
    """

    def __init__(self) -> None:
        self.records: dict[str, Record] = {}
        self.offline = False
        self.unauthenticated = False
        self.delay = 0.0
        self.normalize = False
        self.failure: Exception | None = None
        self.calls: list[str] = []
        self.closed = False

    @property
    def endpoint(self) -> str:
        return "memory://remote"

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.unauthenticated:
            raise AuthenticationError(self.endpoint, "no caller identity")
        if self.offline:
            raise StorageConnectionError(self.endpoint, OSError("network unreachable"))
        if self.failure is not None:
            raise self.failure

    def _store(self, record: Record) -> Record:
        payload = dict(record.payload)
        if self.normalize:
            payload["serverNormalized"] = True
        stored = Record(
            id=record.id,
            parent_id=record.parent_id,
            payload=payload,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        self.records[stored.id] = stored
        return stored

    def seed(self, record: Record) -> None:
        """Place a record remotely without recording a call."""
        self.records[record.id] = record

    async def create(self, record: Record) -> Record:
        await self._enter("create")
        if record.id in self.records:
            raise RecordExistsError(record.id)
        return self._store(record)

    async def get(self, record_id: str) -> Record | None:
        await self._enter("get")
        return self.records.get(record_id)

    async def exists(self, record_id: str) -> bool:
        await self._enter("exists")
        return record_id in self.records

    async def query_by_parent(self, parent_id: str) -> list[Record]:
        await self._enter("query_by_parent")
        return [r for r in self.records.values() if r.parent_id == parent_id]

    async def update(self, record_id: str, partial_payload: dict[str, Any]) -> Record:
        await self._enter("update")
        existing = self.records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(record_id)
        merged = Record(
            id=existing.id,
            parent_id=existing.parent_id,
            payload=merge_payload(existing.payload, partial_payload),
            created_at=existing.created_at,
            updated_at=utc_now(),
        )
        return self._store(merged)

    async def delete(self, record_id: str) -> None:
        await self._enter("delete")
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        del self.records[record_id]

    async def close(self) -> None:
        self.closed = True


class FakeCompletionService(CompletionService):
    """Completion service returning queued responses and recording prompts."""

    def __init__(self, responses: list[str] | None = None) -> None:
        self.responses = list(responses or [])
        self.prompts: list[str] = []
        self.options: list[CompletionOptions | None] = []

    async def complete(self, prompt: str, options: CompletionOptions | None = None) -> str:
        self.prompts.append(prompt)
        self.options.append(options)
        if not self.responses:
            raise AssertionError("No completion response queued")
        return self.responses.pop(0)


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def local_cache() -> LocalCacheStore:
    """Local cache over an in-memory key/value backend."""
    return LocalCacheStore(MemoryKeyValueBackend(), "prd-storage-features")


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def coordinator(
    local_cache: LocalCacheStore, remote_store: InMemoryRemoteStore
) -> SyncCoordinator:
    """Coordinator with a short remote timeout for timeout tests."""
    return SyncCoordinator(local_cache, remote_store, remote_timeout=0.5, record_type="feature")


@pytest.fixture
def feature_set_remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def feature_set_coordinator(feature_set_remote: InMemoryRemoteStore) -> SyncCoordinator:
    """Coordinator for feature-set records, with its own remote container."""
    local = LocalCacheStore(MemoryKeyValueBackend(), "prd-storage-feature_sets")
    return SyncCoordinator(local, feature_set_remote, remote_timeout=0.5, record_type="feature_set")
