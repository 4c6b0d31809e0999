"""GitHub contents API client for the shared inventory file.

The lab keeps one JSON file in a GitHub repository as shared storage. This
module reads that file and replaces it as a whole. It does not merge: the
version token (``sha``) returned by every successful read or write is sent
back on the next write, and GitHub rejects the write if the file moved in
between. That rejection surfaces as :class:`RemoteConflictError`.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from http.client import HTTPException
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from zoarch.core.protocols import RemoteConfig

from .credentials import SessionCredentials
from .errors import RemoteConflictError, RemoteError, RemoteNotConfiguredError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "zoarch-catalog"
ACCEPT_HEADER = "application/vnd.github.v3+json"

# GitHub answers a write with a stale or missing sha with one of these
CONFLICT_STATUSES = {409, 422}


class ClientState(str, Enum):
    """Lifecycle of the client's knowledge about the remote file."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    READY_WITH_TOKEN = "ready_with_token"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class GitHubBlobClient:
    """Read and overwrite one JSON file in a GitHub repository."""

    config: RemoteConfig = field(default_factory=RemoteConfig)
    credentials: SessionCredentials = field(default_factory=SessionCredentials)
    api_url: str = DEFAULT_API_URL
    timeout: float | None = DEFAULT_TIMEOUT
    _logger: Optional[logging.Logger] = None

    state: ClientState = field(default=ClientState.UNINITIALIZED, init=False)
    last_sync_time: Optional[datetime] = field(default=None, init=False)
    _sha: Optional[str] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self._logger is None:
            self._logger = logging.getLogger(__name__)
        self.api_url = self.api_url.rstrip("/")

    @classmethod
    def from_settings(
        cls,
        config: RemoteConfig,
        credentials: SessionCredentials,
        settings: Dict[str, Any] | None = None,
    ) -> "GitHubBlobClient":
        """Create a client from the ``github`` section of the app settings."""
        settings = settings or {}
        return cls(
            config=config,
            credentials=credentials,
            api_url=settings.get("api_url", DEFAULT_API_URL),
            timeout=settings.get("timeout", DEFAULT_TIMEOUT),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def version_token(self) -> Optional[str]:
        """The sha of the remote file as of the last successful read/write."""
        return self._sha

    def configure(self, config: RemoteConfig) -> None:
        """Point the client at a different file; forgets the cached token."""
        self.config = config
        self._sha = None
        self.state = ClientState.UNINITIALIZED

    def set_token(self, token: str) -> None:
        self.credentials.set_token(token)

    def has_credential(self) -> bool:
        return self.credentials.has_token()

    def initialize(self) -> bool:
        """Validate configuration and check the repository is reachable.

        Returns:
            True when the repository metadata could be read. Never raises.
        """
        if not self.config.is_complete():
            self._logger.warning("GitHub owner and repo are not configured")
            self.state = ClientState.UNINITIALIZED
            return False
        if not self.has_credential():
            self._logger.warning("GitHub token not provided")
            self.state = ClientState.UNINITIALIZED
            return False

        try:
            self._request("GET", self._repo_url())
        except RemoteError as e:
            self._logger.warning(f"GitHub connection test failed: {e}")
            self.state = ClientState.UNINITIALIZED
            return False
        except Exception as e:
            self._logger.error(f"Error initializing GitHub storage: {e}", exc_info=True)
            self.state = ClientState.UNINITIALIZED
            return False

        if self.state == ClientState.UNINITIALIZED:
            self.state = ClientState.READY
        self._logger.info(
            f"GitHub storage initialized for {self.config.owner}/{self.config.repo}"
        )
        return True

    def read(self) -> List[Dict[str, Any]]:
        """Fetch the inventory file.

        A missing file reads as an empty list. The returned sha is cached for
        the next :meth:`write`.

        Raises:
            RemoteNotConfiguredError: owner, repo or token missing
            RemoteError: any other failure
        """
        self._require_config()
        url = f"{self._contents_url()}?{urlencode({'ref': self.config.branch})}"

        try:
            payload = self._request("GET", url)
        except RemoteError as e:
            if e.status == 404:
                self._logger.info(
                    f"Remote file {self.config.path} does not exist yet; starting empty"
                )
                self._sha = None
                self.state = ClientState.READY
                self.last_sync_time = datetime.now(timezone.utc)
                return []
            self._drop_token()
            raise

        if not isinstance(payload, dict):
            self._drop_token()
            raise RemoteError(f"Remote path {self.config.path} is not a file")

        try:
            raw = base64.b64decode(str(payload.get("content", "")).replace("\n", ""))
            text = raw.decode("utf-8")
            data = json.loads(text) if text.strip() else []
        except ValueError as e:
            self._drop_token()
            raise RemoteError(f"Remote file is not valid JSON: {e}") from e

        if not isinstance(data, list):
            self._drop_token()
            raise RemoteError("Remote file does not contain a record list")

        self._sha = payload.get("sha")
        self.state = ClientState.READY_WITH_TOKEN if self._sha else ClientState.READY
        self.last_sync_time = datetime.now(timezone.utc)
        self._logger.info(f"Fetched {len(data)} records from GitHub")
        return data

    def write(self, data: List[Dict[str, Any]]) -> Optional[str]:
        """Replace the inventory file with ``data``.

        Sends the cached sha when there is one so GitHub can refuse the write
        if the file changed since it was read. No retry, no merge.

        Returns:
            The new sha of the file

        Raises:
            RemoteNotConfiguredError: owner, repo or token missing
            RemoteConflictError: the file changed since the last read
            RemoteError: any other failure
        """
        self._require_config()

        content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        body: Dict[str, Any] = {
            "message": f"Update inventory data [{_utc_timestamp()}]",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.config.branch,
        }
        if self._sha:
            body["sha"] = self._sha

        try:
            payload = self._request("PUT", self._contents_url(), body)
        except RemoteError:
            self._drop_token()
            raise
        if not isinstance(payload, dict):
            self._drop_token()
            raise RemoteError("GitHub returned an unexpected response to the write")

        file_info = payload.get("content")
        self._sha = file_info.get("sha") if isinstance(file_info, dict) else None
        self.state = ClientState.READY_WITH_TOKEN if self._sha else ClientState.READY
        self.last_sync_time = datetime.now(timezone.utc)
        self._logger.info(f"Saved {len(data)} records to GitHub")
        return self._sha

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _repo_url(self) -> str:
        return f"{self.api_url}/repos/{quote(self.config.owner)}/{quote(self.config.repo)}"

    def _contents_url(self) -> str:
        return f"{self._repo_url()}/contents/{quote(self.config.path.lstrip('/'), safe='/')}"

    def _require_config(self) -> None:
        if not self.config.is_complete():
            raise RemoteNotConfiguredError("GitHub owner and repo are not configured")
        if not self.has_credential():
            raise RemoteNotConfiguredError("GitHub token not provided")

    def _drop_token(self) -> None:
        """After a failure the next write must follow a fresh read."""
        self._sha = None
        if self.state == ClientState.READY_WITH_TOKEN:
            self.state = ClientState.READY

    def _request(self, method: str, url: str, body: Dict[str, Any] | None = None) -> Any:
        """Send one request and decode the JSON response."""
        headers = {
            "Authorization": f"token {self.credentials.token}",
            "Accept": ACCEPT_HEADER,
            "User-Agent": USER_AGENT,
        }
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(request, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as e:
            message = f"GitHub API error: {e.code}"
            if e.code in CONFLICT_STATUSES:
                raise RemoteConflictError(
                    f"{message} (remote file changed since last read)", status=e.code
                ) from e
            raise RemoteError(message, status=e.code) from e
        except (OSError, HTTPException) as e:
            raise RemoteError(f"GitHub request failed: {getattr(e, 'reason', e)}") from e

        self._logger.debug(f"GitHub API success: {method} {url}")
        if not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise RemoteError(f"GitHub returned invalid JSON: {e}") from e
