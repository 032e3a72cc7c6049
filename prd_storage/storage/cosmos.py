"""
Cosmos DB record store.

Remote, authoritative storage for PRD and feature records. Records of all
types share one container; each document is partitioned by the owning
user id and tagged with its record type.

Supports multiple authentication methods:
- Key-based authentication (development)
- Azure AD via DefaultAzureCredential (recommended)
- Azure Managed Identity
- Service Principal
"""

from __future__ import annotations

import logging
from typing import Any

from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from ..exceptions import (
    AuthenticationError,
    RecordExistsError,
    RecordNotFoundError,
    StorageConnectionError,
)
from ..identity.provider import IdentityProvider
from ..records.types import Record, merge_payload, utc_now
from .base import CosmosAuthMethod, RemoteRecordStore, StorageConfig

logger = logging.getLogger(__name__)


def _get_credential(config: StorageConfig) -> Any:
    """Get the appropriate credential based on auth method.

    Raises:
        AuthenticationError: If credential cannot be created
    """
    endpoint = config.cosmos_endpoint or "cosmos"
    auth_method = config.cosmos_auth_method

    if auth_method == CosmosAuthMethod.KEY:
        if not config.cosmos_key:
            raise AuthenticationError(endpoint, "cosmos_key required for KEY authentication")
        return config.cosmos_key

    if auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL:
        from azure.identity.aio import DefaultAzureCredential

        return DefaultAzureCredential()

    if auth_method == CosmosAuthMethod.MANAGED_IDENTITY:
        from azure.identity.aio import ManagedIdentityCredential

        # If client_id is provided, use user-assigned managed identity
        if config.azure_client_id:
            return ManagedIdentityCredential(client_id=config.azure_client_id)
        return ManagedIdentityCredential()

    if auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        if not all([config.azure_tenant_id, config.azure_client_id, config.azure_client_secret]):
            raise AuthenticationError(
                endpoint,
                "azure_tenant_id, azure_client_id, and azure_client_secret "
                "required for SERVICE_PRINCIPAL authentication",
            )
        from azure.identity.aio import ClientSecretCredential

        return ClientSecretCredential(
            tenant_id=config.azure_tenant_id,
            client_id=config.azure_client_id,
            client_secret=config.azure_client_secret,
        )

    raise AuthenticationError(endpoint, f"Unsupported auth method: {auth_method}")


class CosmosRecordStore(RemoteRecordStore):
    """Cosmos DB store for one record type.

    Partition key value: {user_id}

    Container schema:
    {
        "id": "{record_id}",
        "partitionKey": "{user_id}",
        "user_id": "{user_id}",
        "record_type": "prd|feature",
        "parent_id": "{brief_id}",
        "payload": {...},
        "created_at": "{iso_timestamp}",
        "updated_at": "{iso_timestamp}"
    }

    Every call resolves the caller identity first. Without one the call
    fails with AuthenticationError before any network I/O.
    """

    def __init__(
        self,
        config: StorageConfig,
        identity_provider: IdentityProvider,
        record_type: str,
    ) -> None:
        if not config.cosmos_endpoint:
            raise StorageConnectionError("cosmos", ValueError("Cosmos endpoint is required"))

        self.config = config
        self.identity_provider = identity_provider
        self.record_type = record_type
        self._partition_key_path = config.cosmos_partition_key_path

        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._database: DatabaseProxy | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False

    @property
    def endpoint(self) -> str:
        return self.config.cosmos_endpoint or "cosmos"

    async def _user_id(self) -> str:
        """Resolve the caller identity, translating provider failures."""
        try:
            identity = await self.identity_provider.get_current_identity()
        except AuthenticationError:
            raise
        except Exception as e:
            raise AuthenticationError(self.endpoint, f"identity resolution failed: {e}") from e
        return identity.user_id

    async def _ensure_initialized(self) -> ContainerProxy:
        """Ensure client and container are initialized."""
        if self._initialized and self._container is not None:
            return self._container

        self._credential = _get_credential(self.config)

        try:
            client = CosmosClient(self.endpoint, credential=self._credential)
            self._client = client

            database = await client.create_database_if_not_exists(id=self.config.cosmos_database)
            self._database = database

            container = await database.create_container_if_not_exists(
                id=self.config.cosmos_container,
                partition_key=PartitionKey(path=self._partition_key_path),
                indexing_policy=self._get_indexing_policy(),
            )
            self._container = container

            self._initialized = True
            logger.info(
                f"Connected to Cosmos DB: {self.endpoint} "
                f"(database={self.config.cosmos_database}, "
                f"container={self.config.cosmos_container}, "
                f"auth={self.config.cosmos_auth_method.value})"
            )
            return container

        except CosmosHttpResponseError as e:
            await self._discard_client()
            if e.status_code in (401, 403):
                raise AuthenticationError(self.endpoint, str(e)) from e
            raise StorageConnectionError(self.endpoint, e) from e
        except Exception as e:
            await self._discard_client()
            raise StorageConnectionError(self.endpoint, e) from e

    async def _release(self) -> None:
        """Close the client and credential and forget the container."""
        client, credential = self._client, self._credential
        self._client = None
        self._credential = None
        self._database = None
        self._container = None
        self._initialized = False

        if client is not None:
            await client.close()
        # AAD credentials hold their own transport
        if credential is not None and hasattr(credential, "close"):
            await credential.close()

    async def _discard_client(self) -> None:
        """Release a half-initialized client after a failed connection attempt."""
        try:
            await self._release()
        except Exception as e:
            logger.debug(f"Error closing Cosmos client after failed connect: {e}")

    def _get_indexing_policy(self) -> dict[str, Any]:
        """Get the indexing policy for the container."""
        return {
            "indexingMode": "consistent",
            "automatic": True,
            "includedPaths": [{"path": "/*"}],
            "excludedPaths": [
                {"path": "/payload/*"},  # Payload is opaque
                {"path": '/"_etag"/?'},
            ],
            "compositeIndexes": [
                [
                    {"path": "/record_type", "order": "ascending"},
                    {"path": "/parent_id", "order": "ascending"},
                    {"path": "/created_at", "order": "ascending"},
                ],
            ],
        }

    def _translate(self, e: Exception) -> Exception:
        """Map SDK errors onto the storage exception taxonomy."""
        if isinstance(e, CosmosHttpResponseError) and e.status_code in (401, 403):
            return AuthenticationError(self.endpoint, str(e))
        return StorageConnectionError(self.endpoint, e)

    async def create(self, record: Record) -> Record:
        user_id = await self._user_id()
        container = await self._ensure_initialized()

        try:
            doc = await container.create_item(body=self._record_to_document(record, user_id))
        except CosmosResourceExistsError as e:
            raise RecordExistsError(record.id) from e
        except AzureError as e:
            raise self._translate(e) from e

        return self._document_to_record(doc)

    async def get(self, record_id: str) -> Record | None:
        user_id = await self._user_id()
        doc = await self._read_document(record_id, user_id)
        if doc is None:
            return None
        return self._document_to_record(doc)

    async def query_by_parent(self, parent_id: str) -> list[Record]:
        user_id = await self._user_id()
        container = await self._ensure_initialized()

        query = """
            SELECT * FROM c
            WHERE c.parent_id = @parent_id
            AND c.record_type = @record_type
            AND c.user_id = @user_id
        """
        params: list[dict[str, Any]] = [
            {"name": "@parent_id", "value": parent_id},
            {"name": "@record_type", "value": self.record_type},
            {"name": "@user_id", "value": user_id},
        ]

        records: list[Record] = []
        try:
            async for doc in container.query_items(
                query=query,
                parameters=params,
                partition_key=user_id,
            ):
                records.append(self._document_to_record(doc))
        except AzureError as e:
            raise self._translate(e) from e

        return records

    async def update(self, record_id: str, partial_payload: dict[str, Any]) -> Record:
        user_id = await self._user_id()
        doc = await self._read_document(record_id, user_id)
        if doc is None:
            raise RecordNotFoundError(record_id, self.record_type)

        doc["payload"] = merge_payload(doc.get("payload") or {}, partial_payload)
        doc["updated_at"] = utc_now().isoformat()

        container = await self._ensure_initialized()
        try:
            replaced = await container.replace_item(item=record_id, body=doc)
        except CosmosResourceNotFoundError as e:
            raise RecordNotFoundError(record_id, self.record_type) from e
        except AzureError as e:
            raise self._translate(e) from e

        return self._document_to_record(replaced)

    async def delete(self, record_id: str) -> None:
        user_id = await self._user_id()
        if await self._read_document(record_id, user_id) is None:
            raise RecordNotFoundError(record_id, self.record_type)

        container = await self._ensure_initialized()

        try:
            await container.delete_item(item=record_id, partition_key=user_id)
        except CosmosResourceNotFoundError as e:
            raise RecordNotFoundError(record_id, self.record_type) from e
        except AzureError as e:
            raise self._translate(e) from e

    async def close(self) -> None:
        """Close the Cosmos client."""
        await self._release()

    async def __aenter__(self) -> CosmosRecordStore:
        await self._ensure_initialized()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _read_document(self, record_id: str, user_id: str) -> dict[str, Any] | None:
        """Read a raw document; None if missing or of another record type."""
        container = await self._ensure_initialized()
        try:
            doc = await container.read_item(item=record_id, partition_key=user_id)
        except CosmosResourceNotFoundError:
            return None
        except AzureError as e:
            raise self._translate(e) from e

        if doc.get("record_type") != self.record_type:
            return None
        return doc

    def _record_to_document(self, record: Record, user_id: str) -> dict[str, Any]:
        """Convert a record to a Cosmos document."""
        return {
            "id": record.id,
            "partitionKey": user_id,
            "user_id": user_id,
            "record_type": self.record_type,
            "parent_id": record.parent_id,
            "payload": record.payload,
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
        }

    def _document_to_record(self, doc: dict[str, Any]) -> Record:
        """Convert a Cosmos document to a record."""
        return Record.from_dict(doc)
