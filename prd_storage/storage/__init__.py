"""
Record storage backends.

Provides the synchronous local cache (over a durable key/value backend)
and the asynchronous Cosmos DB remote store, with a shared configuration.

Example:
    >>> from prd_storage.storage import StorageConfig, CosmosAuthMethod
    >>> config = StorageConfig(
    ...     cosmos_endpoint="https://example.documents.azure.com:443/",
    ...     cosmos_auth_method=CosmosAuthMethod.DEFAULT_CREDENTIAL,
    ... )
"""

from .base import CosmosAuthMethod, RemoteRecordStore, StorageConfig
from .cosmos import CosmosRecordStore
from .kv import FileKeyValueBackend, KeyValueBackend, MemoryKeyValueBackend
from .local import LocalCacheStore

__all__ = [
    # Configuration
    "StorageConfig",
    "CosmosAuthMethod",
    # Local
    "KeyValueBackend",
    "FileKeyValueBackend",
    "MemoryKeyValueBackend",
    "LocalCacheStore",
    # Remote
    "RemoteRecordStore",
    "CosmosRecordStore",
]
