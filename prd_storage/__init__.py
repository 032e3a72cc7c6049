"""
PRD Storage

Dual-store persistence for product briefs' feature lists and PRDs.

Provides:
- A synchronous local cache that always accepts writes
- An authoritative Cosmos DB remote store scoped by caller identity
- A sync coordinator that merges both with remote-wins, local-fills-gaps reads
- Feature and PRD generation over an opaque text-completion service
- Markdown export of PRDs

Usage:

    >>> from prd_storage import StorageConfig, ConfigFileIdentityProvider, build_coordinator
    >>> config = StorageConfig.from_environment()
    >>> identity = ConfigFileIdentityProvider()
    >>> async with build_coordinator(config, identity, "feature") as features:
    ...     records = await features.list_by_parent(brief_id)

Typed services:

    from prd_storage.services import FeatureService, PRDService

    prds = PRDService(build_coordinator(config, identity, "prd"))
    prd = await prds.get(prd_id)

    features = FeatureService(
        build_coordinator(config, identity, "feature"),
        build_coordinator(config, identity, "feature_set"),
    )
    feature_set = await features.get_feature_set(brief_id)
"""

# Exceptions
from .exceptions import (
    AuthenticationError,
    CompletionError,
    CompletionRateLimitError,
    CompletionTimeoutError,
    MalformedResponseError,
    RecordExistsError,
    RecordNotFoundError,
    RecordStorageError,
    RemoteTimeoutError,
    StorageConnectionError,
    StorageIOError,
    StorageQuotaExceededError,
    ValidationError,
)

# Identity
from .identity import (
    AuthenticationRequiredError,
    AuthTokenIdentityProvider,
    ConfigFileIdentityProvider,
    IdentityProvider,
    StaticIdentityProvider,
    UserIdentity,
)

# Records
from .records import Record, merge_payload, new_record

# Services
from .services import PRD, Feature, FeatureService, FeatureSet, PRDService

# Storage
from .storage import (
    CosmosAuthMethod,
    CosmosRecordStore,
    FileKeyValueBackend,
    KeyValueBackend,
    LocalCacheStore,
    MemoryKeyValueBackend,
    RemoteRecordStore,
    StorageConfig,
)

# Sync
from .sync import SyncCoordinator, build_coordinator

__all__ = [
    # Records
    "Record",
    "new_record",
    "merge_payload",
    # Storage
    "StorageConfig",
    "CosmosAuthMethod",
    "KeyValueBackend",
    "FileKeyValueBackend",
    "MemoryKeyValueBackend",
    "LocalCacheStore",
    "RemoteRecordStore",
    "CosmosRecordStore",
    # Sync
    "SyncCoordinator",
    "build_coordinator",
    # Services
    "PRD",
    "Feature",
    "FeatureSet",
    "PRDService",
    "FeatureService",
    # Identity
    "IdentityProvider",
    "UserIdentity",
    "ConfigFileIdentityProvider",
    "StaticIdentityProvider",
    "AuthTokenIdentityProvider",
    # Exceptions
    "RecordStorageError",
    "ValidationError",
    "RecordNotFoundError",
    "RecordExistsError",
    "StorageConnectionError",
    "RemoteTimeoutError",
    "AuthenticationError",
    "AuthenticationRequiredError",
    "StorageIOError",
    "StorageQuotaExceededError",
    "CompletionError",
    "CompletionRateLimitError",
    "CompletionTimeoutError",
    "MalformedResponseError",
]

__version__ = "0.1.0"
