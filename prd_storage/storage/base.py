"""
Storage configuration and the remote record store contract.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..records.types import Record

DEFAULT_LOCAL_CAPACITY_BYTES = 5 * 1024 * 1024
DEFAULT_REMOTE_TIMEOUT = 10.0


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use account key (development only)
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


@dataclass
class StorageConfig:
    """Configuration for the local cache and the remote record store.

    Environment Variables:
        PRD_STORAGE_COSMOS_ENDPOINT: Cosmos DB endpoint URL
        PRD_STORAGE_COSMOS_KEY: Cosmos DB key (if using key auth)
        PRD_STORAGE_COSMOS_DATABASE: Database name (default: prd-storage)
        PRD_STORAGE_COSMOS_CONTAINER: Container name (default: records)
        PRD_STORAGE_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
        AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: Azure AD settings
        PRD_STORAGE_LOCAL_PATH: Directory for the local cache
        PRD_STORAGE_LOCAL_CAPACITY_BYTES: Per-key cache capacity (default: 5 MiB)
        PRD_STORAGE_REMOTE_TIMEOUT: Seconds before a remote call counts as failed
    """

    # Cosmos DB connection settings
    cosmos_endpoint: str | None = None
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    cosmos_key: str | None = None  # Only used if auth_method is KEY
    cosmos_database: str = "prd-storage"
    cosmos_container: str = "records"
    cosmos_partition_key_path: str = "/partitionKey"

    # Azure AD authentication settings
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    # Local cache settings
    local_path: str | None = None
    local_capacity_bytes: int | None = DEFAULT_LOCAL_CAPACITY_BYTES

    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT

    options: dict[str, Any] = field(default_factory=dict)

    @property
    def local_directory(self) -> Path:
        """Resolved local cache directory."""
        if self.local_path:
            return Path(self.local_path)
        return Path.home() / ".prd_storage" / "cache"

    @classmethod
    def from_environment(cls) -> StorageConfig:
        """Create configuration from environment variables."""
        auth_method_str = os.environ.get("PRD_STORAGE_COSMOS_AUTH_METHOD", "default_credential")
        try:
            auth_method = CosmosAuthMethod(auth_method_str.lower())
        except ValueError:
            auth_method = CosmosAuthMethod.DEFAULT_CREDENTIAL

        capacity_str = os.environ.get("PRD_STORAGE_LOCAL_CAPACITY_BYTES")
        timeout_str = os.environ.get("PRD_STORAGE_REMOTE_TIMEOUT")

        return cls(
            cosmos_endpoint=os.environ.get("PRD_STORAGE_COSMOS_ENDPOINT"),
            cosmos_auth_method=auth_method,
            cosmos_key=os.environ.get("PRD_STORAGE_COSMOS_KEY"),
            cosmos_database=os.environ.get("PRD_STORAGE_COSMOS_DATABASE", "prd-storage"),
            cosmos_container=os.environ.get("PRD_STORAGE_COSMOS_CONTAINER", "records"),
            azure_tenant_id=os.environ.get("AZURE_TENANT_ID"),
            azure_client_id=os.environ.get("AZURE_CLIENT_ID"),
            azure_client_secret=os.environ.get("AZURE_CLIENT_SECRET"),
            local_path=os.environ.get("PRD_STORAGE_LOCAL_PATH"),
            local_capacity_bytes=(
                int(capacity_str) if capacity_str else DEFAULT_LOCAL_CAPACITY_BYTES
            ),
            remote_timeout=float(timeout_str) if timeout_str else DEFAULT_REMOTE_TIMEOUT,
        )


class RemoteRecordStore(ABC):
    """Authoritative, network-backed record store.

    Every operation may fail with StorageConnectionError (transport or
    timeout) or AuthenticationError (no caller identity). Absence is
    reported by ``get`` returning None; ``update`` and ``delete`` raise
    RecordNotFoundError for a missing id.
    """

    @abstractmethod
    async def create(self, record: Record) -> Record:
        """Create a record and return the stored (possibly normalized) copy.

        Raises:
            RecordExistsError: If the id is already taken
        """
        ...

    @abstractmethod
    async def get(self, record_id: str) -> Record | None:
        """Fetch a record by id, or None if it does not exist."""
        ...

    async def exists(self, record_id: str) -> bool:
        """Check whether a record with this id exists remotely."""
        return await self.get(record_id) is not None

    @abstractmethod
    async def query_by_parent(self, parent_id: str) -> list[Record]:
        """All records owned by ``parent_id``. Order is not guaranteed."""
        ...

    @abstractmethod
    async def update(self, record_id: str, partial_payload: dict[str, Any]) -> Record:
        """Shallow-merge ``partial_payload`` into the stored payload.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        ...

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Delete a record.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close connections and release resources."""
        ...

    @property
    def endpoint(self) -> str:
        """Human-readable location used in log and error messages."""
        return type(self).__name__
