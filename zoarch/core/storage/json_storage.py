"""
JSON file-based storage backend.

Stores each key as its own file in a data directory:
- zoarch_inventory_data.json: the full record list
- zoarch_settings.json: storage mode and remote location

Suitable for development and single-user scenarios.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from .errors import StorageError, StorageQuotaError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JSONStorage:
    """JSON file-based key-value storage.

    Implements the KeyValueStorage protocol with one file per key.

    Values are written to a temporary file and moved into place, so a crash
    mid-write leaves the previous value intact. An optional ``max_bytes``
    limit mirrors the quota a browser puts on local storage.
    """

    def __init__(
        self,
        data_dir: Path,
        max_bytes: Optional[int] = None,
    ):
        """Initialize JSON storage.

        Args:
            data_dir: Directory for data files
            max_bytes: Optional total size limit across all keys
        """
        self.data_dir = Path(data_dir)
        self.max_bytes = max_bytes

        # Ensure directories exist
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        return self.data_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> Optional[str]:
        """Get stored text for key, or None if absent."""
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(key, f"Failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        """Replace stored text for key."""
        path = self._path_for(key)
        encoded = value.encode("utf-8")

        if self.max_bytes is not None:
            current = path.stat().st_size if path.exists() else 0
            projected = self._total_size() - current + len(encoded)
            if projected > self.max_bytes:
                raise StorageQuotaError(
                    key,
                    f"Storage quota exceeded ({projected} > {self.max_bytes} bytes)",
                    size=projected,
                    limit=self.max_bytes,
                )

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "wb") as f:
                f.write(encoded)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(key, f"Failed to write {path}: {e}") from e

        logger.debug(f"Saved {len(encoded)} bytes to {path}")

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(key, f"Failed to remove {path}: {e}") from e

    def _total_size(self) -> int:
        return sum(p.stat().st_size for p in self.data_dir.glob("*.json") if p.is_file())

    def close(self) -> None:
        """Nothing to release; files are closed after every write."""
