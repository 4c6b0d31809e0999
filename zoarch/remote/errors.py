from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class RemoteError(Exception):
    """Raised by the remote blob client when a request fails.

    Parameters
    ----------
    message:
        Human readable error message.
    status:
        HTTP status code, or ``None`` for network-level failures.
    """

    message: str
    status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.status is None:
            return self.message
        return f"{self.status}: {self.message}"


@dataclass
class RemoteConflictError(RemoteError):
    """The remote file changed since it was last read (stale version token)."""


@dataclass
class RemoteNotConfiguredError(RemoteError):
    """Owner, repository or access token is missing."""


__all__ = ["RemoteError", "RemoteConflictError", "RemoteNotConfiguredError"]
