"""Key/value storage backends for persisted session data.

Mirrors browser local storage: string values under string keys, read and
written synchronously as whole values.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("mapty.storage")

STORAGE_FILENAME = "storage.json"
CORRUPT_SUFFIX = ".corrupt"


class StorageError(OSError):
    """Raised when the storage backend cannot be read or written."""


class KeyValueStore(Protocol):
    """Synchronous string key/value storage."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, used for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def clear(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Store backed by a single JSON object file.

    Each write replaces the file atomically, so readers never observe a
    partially written file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            # ValueError covers bad JSON and bytes that are not UTF-8
            raise StorageError(f"Cannot read storage file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _load_for_update(self) -> dict[str, str]:
        """Load the current contents, moving an unreadable file aside.

        Writes replace the whole file, so a corrupt file must not block them.
        The bad file is kept next to the store with a ``.corrupt`` suffix.
        """
        try:
            return self._load()
        except StorageError as e:
            backup = self.path.with_name(self.path.name + CORRUPT_SUFFIX)
            try:
                os.replace(self.path, backup)
            except OSError as move_error:
                raise StorageError(f"Cannot move aside storage file {self.path}: {move_error}") from e
            logger.warning("Moved unreadable storage file to %s: %s", backup, e)
            return {}

    def _save(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write storage file {self.path}: {e}") from e

    def read(self, key: str) -> str | None:
        """Read the value stored under a key.

        Args:
            key: Storage key.

        Returns:
            Stored string or None if absent.

        Raises:
            StorageError: If the backing file is unreadable.
        """
        value = self._load().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value for {key!r} in {self.path} is not a string")
        return value

    def write(self, key: str, value: str) -> None:
        """Store a value under a key, replacing any previous value.

        An unreadable backing file is moved aside and replaced.

        Raises:
            StorageError: If the backing file cannot be written.
        """
        data = self._load_for_update()
        data[key] = value
        self._save(data)
        logger.debug("Wrote %d bytes to %s[%s]", len(value), self.path, key)

    def clear(self, key: str) -> None:
        """Remove a key. Missing keys are ignored.

        An unreadable backing file is moved aside, which clears every key.
        """
        data = self._load_for_update()
        if key in data:
            del data[key]
            self._save(data)
            logger.debug("Cleared %s[%s]", self.path, key)


def get_storage_path(data_dir: Path) -> Path:
    """Get path to the storage file.

    Args:
        data_dir: Base data directory.

    Returns:
        Path to storage.json.
    """
    return data_dir / STORAGE_FILENAME
