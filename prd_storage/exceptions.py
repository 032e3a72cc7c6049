"""
Custom exceptions for PRD/feature record storage.

All stores, the sync coordinator and the generation layer raise these
exceptions so callers can handle failures consistently.
"""


class RecordStorageError(Exception):
    """Base exception for all record storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RecordStorageError):
    """Raised when a record or update request has an invalid shape."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class RecordNotFoundError(RecordStorageError):
    """Raised when a record id is absent where existence was required."""

    def __init__(self, record_id: str, record_type: str | None = None):
        details = {"record_id": record_id}
        if record_type:
            details["record_type"] = record_type
        super().__init__(f"Record not found: {record_id}", details)
        self.record_id = record_id
        self.record_type = record_type


class RecordExistsError(RecordStorageError):
    """Raised when creating a record whose id is already taken remotely."""

    def __init__(self, record_id: str):
        super().__init__(f"Record already exists: {record_id}", {"record_id": record_id})
        self.record_id = record_id


class StorageConnectionError(RecordStorageError):
    """Raised when the remote record store cannot be reached.

    Note: Named StorageConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class RemoteTimeoutError(StorageConnectionError):
    """Raised when a remote call does not complete within its timeout."""

    def __init__(self, endpoint: str, timeout: float):
        RecordStorageError.__init__(
            self,
            f"Remote call to {endpoint} timed out after {timeout}s",
            {"endpoint": endpoint, "timeout": timeout},
        )
        self.endpoint = endpoint
        self.cause = None
        self.timeout = timeout


class AuthenticationError(RecordStorageError):
    """Raised when no authenticated caller identity is available."""

    def __init__(self, endpoint: str, reason: str | None = None):
        details = {"endpoint": endpoint}
        if reason:
            details["reason"] = reason
        message = f"Authentication failed for {endpoint}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.endpoint = endpoint
        self.reason = reason


class StorageIOError(RecordStorageError):
    """Raised when a local storage I/O operation fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class StorageQuotaExceededError(RecordStorageError):
    """Raised when a value does not fit in a capacity-bounded key/value backend."""

    def __init__(self, key: str, size_bytes: int, capacity_bytes: int):
        details = {
            "key": key,
            "size_bytes": size_bytes,
            "capacity_bytes": capacity_bytes,
        }
        super().__init__(
            f"Storage quota exceeded for {key}: {size_bytes} > {capacity_bytes} bytes",
            details,
        )
        self.key = key
        self.size_bytes = size_bytes
        self.capacity_bytes = capacity_bytes


class CompletionError(RecordStorageError):
    """Raised when the text-completion service call fails."""

    def __init__(self, provider: str, reason: str, cause: Exception | None = None):
        details = {"provider": provider, "reason": reason}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"[{provider}] completion failed: {reason}", details)
        self.provider = provider
        self.reason = reason
        self.cause = cause


class CompletionRateLimitError(CompletionError):
    """The completion provider rejected the call with a rate limit."""


class CompletionTimeoutError(CompletionError):
    """The completion provider did not answer in time."""


class MalformedResponseError(RecordStorageError):
    """Raised when completion output is not valid JSON or lacks the required shape.

    Distinct from network errors: the call reached the provider, the answer
    was unusable. Retrying the generation is reasonable.
    """

    def __init__(self, reason: str, raw: str | None = None):
        details = {"reason": reason}
        if raw is not None:
            details["raw_preview"] = raw[:200]
        super().__init__(f"Malformed completion response: {reason}", details)
        self.reason = reason
        self.raw = raw


# Aliases matching the failure names used across the service layer
NetworkError = StorageConnectionError
NotFoundError = RecordNotFoundError
