"""Key-value stores - String persistence behind the counter repository.

A store maps string keys to string values, the same contract as a mobile
async-storage: ``get(key)`` returns the stored text or None, ``set(key, value)``
overwrites it. Callers own serialization.

Stores raise StorageError on I/O failure. The repository catches it; nothing
above the repository ever sees a storage failure.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Default store location
DEFAULT_STORE_FILE = Path.home() / ".tallies" / "store.json"


class StorageError(Exception):
    """Raised when the underlying store cannot be read or written."""


class KeyValueStore(Protocol):
    """String key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store. Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class JsonFileStore:
    """Store backed by a single JSON object on disk.

    Every ``set`` rewrites the whole file through a temp file + rename so a
    crash mid-write leaves the previous version intact. The file is re-read on
    every ``get``.
    """

    def __init__(self, path: Path | str = DEFAULT_STORE_FILE) -> None:
        """Initialize the store.

        Args:
            path: JSON file holding all keys (default: ~/.tallies/store.json).
        """
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the backing file."""
        return self._path

    def _read(self) -> dict[str, str]:
        """Read the whole key map from disk.

        Raises:
            StorageError: If the file exists but cannot be read or parsed.
        """
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Store file {self._path} is not a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        """Atomically replace the file contents.

        Raises:
            StorageError: If the file cannot be written.
        """
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".store-", suffix=".json", dir=str(self._path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)

    def get(self, key: str) -> str | None:
        """Get a stored value.

        Args:
            key: Store key (e.g. "@counters").

        Returns:
            Stored string, or None if the key was never set.

        Raises:
            StorageError: If the backing file is unreadable.
        """
        with self._lock:
            value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value for '{key}' is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: Store key.
            value: String value.

        Raises:
            StorageError: If the backing file cannot be read or written.
        """
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)
        logger.debug("Stored '%s' (%d chars) in %s", key, len(value), self._path)
