"""
Local storage backends for the specimen inventory.

Provides pluggable key-value implementations:
- JSONStorage: One JSON file per key (development/single-user)
- SQLiteStorage: One SQLite table of slots (single-file portability)

All backends implement the KeyValueStorage protocol.

Usage:
    from zoarch.core.storage import JSONStorage, create_storage

    # Direct instantiation
    storage = JSONStorage(Path("./data"))

    # Factory with config
    storage = create_storage("json", {"path": "./data"})
"""

from pathlib import Path

from .errors import StorageError, StorageQuotaError
from .json_storage import JSONStorage
from .sqlite_storage import SQLiteStorage

__all__ = [
    "JSONStorage",
    "SQLiteStorage",
    "StorageError",
    "StorageQuotaError",
    "create_storage",
]


def create_storage(backend: str, config: dict):
    """Factory function to create storage backend.

    Args:
        backend: Storage type ("json", "sqlite")
        config: Backend-specific configuration ("path", "max_bytes")

    Returns:
        Storage instance implementing KeyValueStorage protocol

    Raises:
        ValueError: If backend type is unknown
    """
    if backend == "json":
        return JSONStorage(
            data_dir=Path(config.get("path", "./data")),
            max_bytes=config.get("max_bytes"),
        )
    elif backend == "sqlite":
        return SQLiteStorage(
            db_path=Path(config.get("path", "./data/zoarch.db")),
            max_bytes=config.get("max_bytes"),
        )
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
