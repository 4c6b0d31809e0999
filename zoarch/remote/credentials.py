"""Session-scoped holder for the remote access token."""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"


class SessionCredentials:
    """Keeps the access token in process memory only.

    The token is never written to durable settings; it disappears when the
    process exits or :meth:`clear` is called. It can be seeded from the
    ``GITHUB_TOKEN`` environment variable of the current session.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or None

    @classmethod
    def from_env(cls) -> "SessionCredentials":
        return cls(os.environ.get(TOKEN_ENV_VAR) or None)

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        if not token or not token.strip():
            raise ValueError("Token is required")
        self._token = token.strip()
        logger.info("Remote access token set for this session")

    def has_token(self) -> bool:
        return bool(self._token)

    def clear(self) -> None:
        self._token = None
        logger.info("Remote access token cleared")

    def __repr__(self) -> str:
        state = "set" if self._token else "empty"
        return f"SessionCredentials(<{state}>)"
