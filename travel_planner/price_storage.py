"""
Durable keyed storage for route price histories.

Each route's history is one JSON document stored under a key derived from
the route id. Three backends are provided:

- FileHistoryStorage: one price-history-<key>.json file per route
- SQLiteHistoryStorage: one row per route in a SQLite database
- MemoryHistoryStorage: process-local dictionary for tests
"""

import logging
import os
import re
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from .config import get_config
from .errors import InvalidInputError, StorageError
from .types import StorageBackendName

logger = logging.getLogger(__name__)

FILE_PREFIX = "price-history-"
FILE_SUFFIX = ".json"


def storage_key(route_id: str) -> str:
    """
    Derive a storage key from a route id.

    Only letters, digits, '-' and '_' are kept so the key is safe as a
    file name.

    Raises:
        InvalidInputError: If nothing usable is left
    """
    key = re.sub(r"[^A-Za-z0-9_-]", "", route_id or "")
    if not key:
        raise InvalidInputError(f"Invalid route id: {route_id!r}", field="route_id", value=route_id)
    return key


# ============================================================================
# Storage Backend Abstract Base
# ============================================================================

class HistoryStorageBackend(ABC):
    """Abstract base class for route history storage backends."""

    @abstractmethod
    def read(self, key: str) -> Optional[bytes]:
        """Read the stored document. Returns None if the key does not exist."""
        pass

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Replace the stored document atomically."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the stored document. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List all stored keys."""
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


# ============================================================================
# File Backend
# ============================================================================

class FileHistoryStorage(HistoryStorageBackend):
    """One JSON file per route in a directory."""

    def __init__(self, directory: Union[str, Path]):
        """
        Initialize file storage.

        The directory is created lazily on the first write so that reading
        never creates state.

        Args:
            directory: Directory holding the history files
        """
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{FILE_PREFIX}{key}{FILE_SUFFIX}"

    def read(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read price history: {e}", key=key) from e

    def write(self, key: str, data: bytes) -> None:
        target = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=self.directory
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write price history: {e}", key=key) from e

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete price history: {e}", key=key) from e

    def keys(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(
            p.name[len(FILE_PREFIX):-len(FILE_SUFFIX)]
            for p in self.directory.glob(f"{FILE_PREFIX}*{FILE_SUFFIX}")
        )


# ============================================================================
# SQLite Backend
# ============================================================================

class SQLiteHistoryStorage(HistoryStorageBackend):
    """SQLite-based route history storage."""

    def __init__(self, db_path: Union[str, Path] = "price-history.db"):
        """
        Initialize SQLite storage.

        Args:
            db_path: Path to the SQLite database file.
                     Use ":memory:" for in-memory database.
        """
        self.db_path = str(db_path)
        self._local = threading.local()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(self.db_path)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def _cursor(self):
        """Context manager for database cursor with auto-commit."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def _init_database(self):
        """Initialize database tables."""
        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS route_history (
                        key TEXT PRIMARY KEY,
                        data BLOB NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize database: {e}") from e

    def read(self, key: str) -> Optional[bytes]:
        try:
            with self._cursor() as cursor:
                cursor.execute("SELECT data FROM route_history WHERE key = ?", (key,))
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read price history: {e}", key=key) from e
        return bytes(row["data"]) if row else None

    def write(self, key: str, data: bytes) -> None:
        try:
            with self._cursor() as cursor:
                cursor.execute("""
                    INSERT INTO route_history (key, data, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        data = excluded.data,
                        updated_at = excluded.updated_at
                """, (key, data, datetime.now(timezone.utc).isoformat()))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write price history: {e}", key=key) from e

    def delete(self, key: str) -> None:
        try:
            with self._cursor() as cursor:
                cursor.execute("DELETE FROM route_history WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete price history: {e}", key=key) from e

    def keys(self) -> List[str]:
        try:
            with self._cursor() as cursor:
                cursor.execute("SELECT key FROM route_history ORDER BY key")
                return [row["key"] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list price histories: {e}") from e

    def close(self):
        """Close the database connection."""
        if getattr(self._local, "connection", None) is not None:
            self._local.connection.close()
            self._local.connection = None


# ============================================================================
# Memory Backend
# ============================================================================

class MemoryHistoryStorage(HistoryStorageBackend):
    """Dictionary-backed storage, lost when the process exits."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


# ============================================================================
# Global Storage Instance
# ============================================================================

_storage: Optional[HistoryStorageBackend] = None
_storage_lock = threading.Lock()


def create_history_storage(
    backend: Optional[StorageBackendName] = None,
    **kwargs,
) -> HistoryStorageBackend:
    """
    Create a storage backend.

    Args:
        backend: "file", "sqlite" or "memory" (default from config)
        **kwargs: Backend-specific configuration (directory, db_path)

    Returns:
        HistoryStorageBackend instance
    """
    config = get_config()
    backend = backend or config.storage_backend

    if backend == "file":
        return FileHistoryStorage(kwargs.get("directory", config.history_dir))
    if backend == "sqlite":
        return SQLiteHistoryStorage(kwargs.get("db_path", config.database_path))
    if backend == "memory":
        return MemoryHistoryStorage()
    raise ValueError(f"Unknown backend: {backend}")


def get_history_storage(
    backend: Optional[StorageBackendName] = None,
    **kwargs,
) -> HistoryStorageBackend:
    """
    Get the global history storage instance.

    Args:
        backend: Storage backend type (default from config)
        **kwargs: Backend-specific configuration

    Returns:
        HistoryStorageBackend instance
    """
    global _storage

    with _storage_lock:
        if _storage is None:
            _storage = create_history_storage(backend, **kwargs)
            logger.info(f"Using {type(_storage).__name__} for price histories")
        return _storage


def reset_history_storage():
    """Reset the global storage instance (for testing)."""
    global _storage
    with _storage_lock:
        if _storage is not None:
            _storage.close()
            _storage = None


__all__ = [
    "storage_key",
    "HistoryStorageBackend",
    "FileHistoryStorage",
    "SQLiteHistoryStorage",
    "MemoryHistoryStorage",
    "create_history_storage",
    "get_history_storage",
    "reset_history_storage",
]
