"""
Durable string key/value backends for the local cache.

The cache keeps its whole record set under a single key, the way a
browser keeps data in localStorage. Backends are synchronous and
capacity-bounded; writing a value larger than the capacity raises
StorageQuotaExceededError.
"""

from __future__ import annotations

import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from ..exceptions import StorageIOError, StorageQuotaExceededError

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueBackend(ABC):
    """Simple get/set/remove storage keyed by string."""

    def __init__(self, capacity_bytes: int | None = None) -> None:
        self.capacity_bytes = capacity_bytes

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            StorageQuotaExceededError: If the value exceeds the capacity
            StorageIOError: If the underlying storage fails
        """
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        ...

    def _check_capacity(self, key: str, value: str) -> None:
        if self.capacity_bytes is None:
            return
        size = len(value.encode("utf-8"))
        if size > self.capacity_bytes:
            raise StorageQuotaExceededError(key, size, self.capacity_bytes)


class MemoryKeyValueBackend(KeyValueBackend):
    """Process-memory backend; durable only for the life of the process."""

    def __init__(self, capacity_bytes: int | None = None) -> None:
        super().__init__(capacity_bytes)
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_capacity(key, value)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileKeyValueBackend(KeyValueBackend):
    """One file per key under ``directory``, written atomically.

    Directory structure:
    {directory}/
      {sanitized_key}.json
    """

    def __init__(self, directory: Path | str, capacity_bytes: int | None = None) -> None:
        super().__init__(capacity_bytes)
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageIOError("read", str(path), e) from e

    def set_item(self, key: str, value: str) -> None:
        self._check_capacity(key, value)
        path = self._path_for(key)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError("create_directory", str(self.directory), e) from e

        # Write to temp file first, then rename over the target
        temp_path: str | None = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path is not None:
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
            raise StorageIOError("write", str(path), e) from e

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageIOError("remove", str(path), e) from e
