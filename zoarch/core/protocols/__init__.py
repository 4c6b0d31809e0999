"""
Protocol interfaces for the specimen catalog.

These protocols define the contracts the record store depends on, so local
storage backends and the remote blob client can be swapped or faked in tests.

Uses typing.Protocol for structural subtyping - implementations don't need
to explicitly inherit, they just need to implement the required methods.

## Storage Contracts

### KeyValueStorage Protocol

A persistent string-to-string slot store, the server-side counterpart of a
browser's ``localStorage``. The record store keeps the whole inventory under
one key and its settings under another.

Required methods:
- `get_item(key: str) -> Optional[str]` - None when the key is absent
- `set_item(key: str, value: str) -> None` - replaces the whole value
- `remove_item(key: str) -> None`

Implementation notes:
- Failures raise `StorageError` (or `StorageQuotaError` when a size limit is hit)
- Writes must be durable when `set_item` returns

### RemoteBlobStore Protocol

One JSON file in a remote repository, read and replaced as a whole.

Required methods:
- `initialize() -> bool` - never raises
- `has_credential() -> bool`
- `read() -> List[Dict[str, Any]]` - missing file reads as an empty list
- `write(data) -> str` - returns the new version token

Implementation notes:
- `read`/`write` raise `RemoteError`; a stale version token raises
  `RemoteConflictError`
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


class StorageMode(str, Enum):
    """Which backend is authoritative for persistence."""

    LOCAL = "local"
    REMOTE = "remote"


class ImportMode(str, Enum):
    """How imported rows combine with the current inventory."""

    APPEND = "append"
    REPLACE = "replace"


class ExportFormat(str, Enum):
    """Tabular formats the inventory can be exported to."""

    EXCEL = "xlsx"
    CSV = "csv"


@dataclass
class RemoteConfig:
    """Location of the inventory file in a GitHub repository.

    The access token is deliberately not part of this structure: it lives in
    a session-scoped holder and is never written to durable settings.
    """

    owner: str = ""
    repo: str = ""
    branch: str = "main"
    path: str = "data/inventory.json"

    def is_complete(self) -> bool:
        return bool(self.owner and self.repo)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RemoteConfig":
        data = data or {}
        return cls(
            owner=str(data.get("owner") or ""),
            repo=str(data.get("repo") or ""),
            branch=str(data.get("branch") or "main"),
            path=str(data.get("path") or "data/inventory.json"),
        )


@runtime_checkable
class KeyValueStorage(Protocol):
    """Protocol for local persistent storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        """Get the stored text for ``key``, or None if absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Replace the stored text for ``key``."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...


@runtime_checkable
class RemoteBlobStore(Protocol):
    """Protocol for the remote inventory blob."""

    def initialize(self) -> bool:
        """Validate configuration and check connectivity."""
        ...

    def has_credential(self) -> bool:
        """Whether an access token is currently held."""
        ...

    def read(self) -> List[Dict[str, Any]]:
        """Fetch and decode the remote inventory."""
        ...

    def write(self, data: List[Dict[str, Any]]) -> str:
        """Replace the remote inventory. Returns the new version token."""
        ...


__all__ = [
    "StorageMode",
    "ImportMode",
    "ExportFormat",
    "RemoteConfig",
    "KeyValueStorage",
    "RemoteBlobStore",
]
