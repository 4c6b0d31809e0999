from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StorageError(Exception):
    """Raised by local storage backends when a read or write fails.

    Parameters
    ----------
    key:
        Storage key involved in the failed operation.
    message:
        Human readable error message.
    """

    key: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.key}: {self.message}"


@dataclass
class StorageQuotaError(StorageError):
    """Raised when a write would exceed the configured storage quota."""

    size: int = 0
    limit: int = 0


__all__ = ["StorageError", "StorageQuotaError"]
