"""
Remote storage for the shared inventory file.

The inventory can be mirrored to a single JSON file in a GitHub repository.
The access token is held per session only (see SessionCredentials).
"""

from .credentials import SessionCredentials
from .errors import RemoteConflictError, RemoteError, RemoteNotConfiguredError
from .github_blob import ClientState, GitHubBlobClient

__all__ = [
    "ClientState",
    "GitHubBlobClient",
    "RemoteConflictError",
    "RemoteError",
    "RemoteNotConfiguredError",
    "SessionCredentials",
]
