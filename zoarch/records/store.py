"""
Record Store: the in-memory specimen inventory and its persistence.

The store owns the ordered list of records. Every mutator writes the full
list to local storage before reporting success and, when the storage mode is
remote and a token is held, mirrors it to GitHub. Remote trouble never fails
a mutation; it is reported through :class:`SyncStatus`.

Errors from the storage and remote layers are caught here and turned into
:class:`MutationResult` values or fallbacks, with a log line for each.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from io_utils.spreadsheets import write_records
from zoarch.core.protocols import (
    ExportFormat,
    ImportMode,
    KeyValueStorage,
    RemoteConfig,
    StorageMode,
)
from zoarch.core.schema import (
    SPECIMEN_COUNT_FIELD,
    SpecimenRecord,
    catalog_key,
    is_blank,
)
from zoarch.core.storage import StorageError
from zoarch.fields import standardize_rows
from zoarch.remote import (
    GitHubBlobClient,
    RemoteConflictError,
    RemoteError,
    SessionCredentials,
)

from .search import editor_group, filter_records, group_tab_counts, search_records

logger = logging.getLogger(__name__)

STORAGE_KEY = "zoarch_inventory_data"
SETTINGS_KEY = "zoarch_settings"

_LEADING_INT = re.compile(r"^\s*(\d+)")


class ErrorKind(str, Enum):
    """Why a mutation was refused."""

    DUPLICATE = "duplicate"
    MISSING_CATALOG = "missing_catalog"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"


class SyncState(str, Enum):
    """Outcome of the last attempt to reach the remote file."""

    IDLE = "idle"
    SYNCED = "synced"
    FAILED = "failed"
    CONFLICT = "conflict"
    SKIPPED = "skipped"


@dataclass
class SyncStatus:
    """Transient notice about remote synchronization."""

    state: SyncState = SyncState.IDLE
    message: str = ""
    timestamp: Optional[str] = None

    @classmethod
    def now(cls, state: SyncState, message: str) -> "SyncStatus":
        return cls(
            state=state,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }


@dataclass
class MutationResult:
    """Outcome of a store mutation; truthy iff it succeeded."""

    ok: bool
    error: Optional[ErrorKind] = None
    message: str = ""
    sync: Optional[SyncStatus] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "sync": self.sync.to_dict() if self.sync else None,
            **self.details,
        }


def specimen_count(value: Any) -> int:
    """Specimens represented by one record: the leading integer, else 1."""
    if is_blank(value):
        return 1
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 1


class RecordStore:
    """
    Specimen inventory backed by a local key-value store and an optional
    GitHub-hosted mirror.

    Args:
        local: Local storage backend (JSONStorage, SQLiteStorage, ...)
        remote: GitHub client; created on demand by configure_remote/set_remote_token
        demo_path: Dataset loaded when no stored data exists (defaults to the
            bundled sample inventory)
    """

    def __init__(
        self,
        local: KeyValueStorage,
        remote: Optional[GitHubBlobClient] = None,
        demo_path: Optional[Path] = None,
    ):
        self.local = local
        self.remote = remote
        self.demo_path = demo_path
        self._records: List[SpecimenRecord] = []
        self._mode = StorageMode.LOCAL
        self._sync = SyncStatus()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def initialize(
        self,
        use_remote: Optional[bool] = None,
        remote_config: Optional[RemoteConfig] = None,
    ) -> List[Dict[str, Any]]:
        """
        Load the inventory.

        Sources are tried in order: the GitHub file (when ``use_remote`` and the
        client initializes), local storage, the demo dataset, an empty list.
        Whatever is loaded from the remote, the demo or nothing is written to
        local storage. Recoverable failures are logged, never raised.

        Args:
            use_remote: Try the remote file first; None uses the saved mode
            remote_config: Remote file location to use (and save)

        Returns:
            Copy of the loaded records
        """
        settings = self._load_settings()
        if use_remote is None:
            use_remote = settings.get("storage_mode") == StorageMode.REMOTE.value

        if remote_config is not None:
            self._apply_remote_config(remote_config, settings)
            self._save_settings(settings)
        elif self.remote is not None and not self.remote.config.is_complete():
            saved = RemoteConfig.from_dict(settings.get("github"))
            if saved.is_complete():
                self.remote.configure(saved)

        records: Optional[List[SpecimenRecord]] = None
        remote_ready = False

        if use_remote and self.remote is not None:
            remote_ready = self.remote.initialize()
            if remote_ready:
                records = self._load_remote()
                if records is not None:
                    self._cache_locally(records, "initialize")
            else:
                self._sync = SyncStatus.now(
                    SyncState.SKIPPED, "GitHub storage unavailable; using local data"
                )

        if records is None:
            records = self._load_local()
        if records is None:
            records = self._load_demo()
            if records is not None:
                self._cache_locally(records, "initialize")
        if records is None:
            logger.info("No stored inventory found; starting empty")
            records = []
            self._cache_locally(records, "initialize")

        self._records = records
        self._mode = StorageMode.REMOTE if remote_ready else StorageMode.LOCAL

        logger.info(
            f"Inventory initialized with {len(records)} records ({self._mode.value} mode)",
            extra={"operation": "initialize", "record_count": len(records)},
        )
        return self.get_all()

    def _load_remote(self) -> Optional[List[SpecimenRecord]]:
        try:
            data = self.remote.read()
        except RemoteError as e:
            self._sync = self._failure_status(e, "load")
            logger.warning(
                f"Could not load inventory from GitHub: {e}",
                extra={"operation": "initialize"},
            )
            return None
        except Exception as e:
            self._sync = SyncStatus.now(SyncState.FAILED, f"GitHub load failed: {e}")
            logger.error(
                f"Unexpected error loading inventory from GitHub: {e}",
                extra={"operation": "initialize"},
                exc_info=True,
            )
            return None
        self._sync = SyncStatus.now(SyncState.SYNCED, f"Loaded {len(data)} records from GitHub")
        return self._to_records(data, "remote")

    def _load_local(self) -> Optional[List[SpecimenRecord]]:
        try:
            text = self.local.get_item(STORAGE_KEY)
        except StorageError as e:
            logger.warning(
                f"Could not read local inventory: {e}", extra={"operation": "initialize"}
            )
            return None
        if text is None:
            return None
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.warning(
                f"Local inventory is not valid JSON: {e}", extra={"operation": "initialize"}
            )
            return None
        if not isinstance(data, list):
            logger.warning(
                "Local inventory is not a record list", extra={"operation": "initialize"}
            )
            return None
        logger.info(f"Loaded {len(data)} records from local storage")
        return self._to_records(data, "local")

    def _load_demo(self) -> Optional[List[SpecimenRecord]]:
        try:
            if self.demo_path is not None:
                text = Path(self.demo_path).read_text(encoding="utf-8")
            else:
                demo = resources.files("zoarch") / "data" / "sample_inventory.json"
                text = demo.read_text(encoding="utf-8")
            data = json.loads(text)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load demo data: {e}", extra={"operation": "initialize"})
            return None
        if not isinstance(data, list):
            logger.warning("Demo data is not a record list", extra={"operation": "initialize"})
            return None
        logger.info(f"Loaded {len(data)} demo records")
        return self._to_records(data, "demo")

    @staticmethod
    def _to_records(data: List[Any], source: str) -> List[SpecimenRecord]:
        records = []
        for row in data:
            if not isinstance(row, Mapping):
                logger.warning(f"Skipping non-record entry from {source} data: {row!r}")
                continue
            records.append(SpecimenRecord.from_dict(row))
        return records

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def get_all(self) -> List[Dict[str, Any]]:
        """Copy of every record in insertion order."""
        return [record.to_dict() for record in self._records]

    def get_by_catalog(self, catalog_id: Any) -> Optional[Dict[str, Any]]:
        index = self._index_of(catalog_key(catalog_id))
        return None if index is None else self._records[index].to_dict()

    def __len__(self) -> int:
        return len(self._records)

    def get_incomplete_records(self, group: Optional[str] = None) -> List[Dict[str, Any]]:
        """Records missing a tracked field, optionally limited to one editor tab."""
        records = [record.to_dict() for record in self._records if not record.is_complete()]
        if group:
            records = [record for record in records if editor_group(record) == group]
        return records

    def incomplete_group_counts(self) -> Dict[str, int]:
        """Incomplete records per editor tab."""
        return group_tab_counts(self.get_incomplete_records())

    def get_unique_values(self, field_name: str) -> List[Any]:
        """Distinct non-empty values of one column, sorted by their text."""
        values: Dict[Any, None] = {}
        for record in self._records:
            value = record.get(field_name)
            if not is_blank(value):
                values.setdefault(value, None)
        return sorted(values, key=str)

    def get_summary_stats(self) -> Dict[str, int]:
        return {
            "total_records": len(self._records),
            "total_specimens": sum(
                specimen_count(record.get(SPECIMEN_COUNT_FIELD)) for record in self._records
            ),
            "unique_species": len(self.get_unique_values("Species")),
            "unique_genera": len(self.get_unique_values("Genus")),
            "unique_families": len(self.get_unique_values("Family")),
            "unique_orders": len(self.get_unique_values("Order")),
            "unique_locations": len(self.get_unique_values("Location")),
            "unique_countries": len(self.get_unique_values("Country")),
            "incomplete_records": sum(1 for r in self._records if not r.is_complete()),
        }

    def search(self, criteria: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return search_records(self.get_all(), criteria)

    def filter(self, term: str = "", field_name: str = "all", **filters: Any) -> List[Dict[str, Any]]:
        """Free-text plus taxonomic/geographic filtering; see filter_records."""
        return filter_records(self.get_all(), term, field_name, **filters)

    def recent(self, count: int = 5) -> List[Dict[str, Any]]:
        """The last ``count`` records added, newest first."""
        if count <= 0:
            return []
        return [record.to_dict() for record in reversed(self._records[-count:])]

    def export_snapshot(self, file_type: Union[ExportFormat, str] = ExportFormat.EXCEL) -> bytes:
        """Serialize the current inventory to Excel or CSV bytes."""
        return write_records(self.get_all(), ExportFormat(file_type))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add(self, record: Mapping[str, Any]) -> MutationResult:
        new_record = SpecimenRecord.from_dict(record)
        key = new_record.catalog_key
        if not key:
            return MutationResult(False, ErrorKind.MISSING_CATALOG, "Catalog # is required")
        if self._index_of(key) is not None:
            logger.warning(
                f"Duplicate catalog number rejected: {key}",
                extra={"operation": "add", "catalog": key},
            )
            return MutationResult(
                False, ErrorKind.DUPLICATE, f"An item with Catalog # {key} already exists"
            )
        return self._commit(self._records + [new_record], "add", key, f"Added {key}")

    def update(self, catalog_id: Any, changes: Mapping[str, Any]) -> MutationResult:
        """Merge ``changes`` into the record; untouched columns keep their values."""
        key = catalog_key(catalog_id)
        index = self._index_of(key)
        if index is None:
            return MutationResult(False, ErrorKind.NOT_FOUND, f"No item with Catalog # {key}")

        updated = self._records[index].copy()
        updated.merge(changes)
        refusal = self._check_rename(key, updated.catalog_key)
        if refusal is not None:
            return refusal

        records = list(self._records)
        records[index] = updated
        return self._commit(records, "update", key, f"Updated {key}")

    def update_many(self, changes: Mapping[Any, Mapping[str, Any]]) -> MutationResult:
        """Apply several partial updates with a single save."""
        records = list(self._records)
        updated: List[str] = []
        missing: List[str] = []
        for catalog_id, fields in changes.items():
            key = catalog_key(catalog_id)
            index = next((i for i, r in enumerate(records) if r.catalog_key == key), None)
            if not key or index is None:
                missing.append(key)
                continue
            record = records[index].copy()
            record.merge(fields)
            new_key = record.catalog_key
            if not new_key or (
                new_key != key and any(r.catalog_key == new_key for r in records)
            ):
                missing.append(key)
                continue
            records[index] = record
            updated.append(key)

        details = {"updated": updated, "missing": missing}
        if missing and not updated:
            return MutationResult(
                False, ErrorKind.NOT_FOUND, "None of the records could be updated", details=details
            )

        result = self._commit(records, "update_many", None, f"Updated {len(updated)} records")
        result.details.update(details)
        return result

    def delete(self, catalog_id: Any) -> MutationResult:
        key = catalog_key(catalog_id)
        index = self._index_of(key)
        if index is None:
            return MutationResult(False, ErrorKind.NOT_FOUND, f"No item with Catalog # {key}")
        records = self._records[:index] + self._records[index + 1 :]
        return self._commit(records, "delete", key, f"Deleted {key}")

    def import_from(
        self,
        rows: List[Mapping[str, Any]],
        mode: Union[ImportMode, str] = ImportMode.APPEND,
    ) -> MutationResult:
        """
        Standardize spreadsheet rows and merge them into the inventory.

        Rows whose catalog number is already present (or repeats an earlier
        row of the same batch) are skipped and counted. Rows without a
        catalog number are kept.

        Args:
            rows: Parsed spreadsheet rows
            mode: APPEND to the inventory or REPLACE it
        """
        mode = ImportMode(mode)
        base = [] if mode is ImportMode.REPLACE else list(self._records)
        seen = {r.catalog_key for r in base if r.catalog_key}

        added: List[SpecimenRecord] = []
        skipped: List[str] = []
        for row in standardize_rows(rows):
            record = SpecimenRecord.from_dict(row)
            key = record.catalog_key
            if key:
                if key in seen:
                    skipped.append(key)
                    continue
                seen.add(key)
            added.append(record)

        if skipped:
            logger.warning(
                f"Skipped {len(skipped)} rows with duplicate catalog numbers",
                extra={"operation": "import"},
            )

        result = self._commit(
            base + added,
            "import",
            None,
            f"Imported {len(added)} records ({mode.value})",
        )
        result.details.update(
            {"imported": len(added), "skipped": len(skipped), "duplicates": skipped}
        )
        return result

    # ------------------------------------------------------------------
    # Storage mode and remote
    # ------------------------------------------------------------------
    def get_storage_mode(self) -> StorageMode:
        return self._mode

    def set_storage_mode(self, mode: Union[StorageMode, str]) -> StorageMode:
        """Choose where changes go. Existing data is not migrated."""
        self._mode = StorageMode(mode)
        settings = self._load_settings()
        settings["storage_mode"] = self._mode.value
        self._save_settings(settings)
        logger.info(f"Storage mode set to {self._mode.value}")
        return self._mode

    @property
    def sync_status(self) -> SyncStatus:
        return self._sync

    def configure_remote(self, config: RemoteConfig) -> None:
        """Point at a remote file and save the location (never the token)."""
        settings = self._load_settings()
        self._apply_remote_config(config, settings)
        self._save_settings(settings)

    def set_remote_token(self, token: str) -> None:
        """Hold the access token for this session only."""
        self._ensure_remote().set_token(token)

    def remote_info(self) -> Dict[str, Any]:
        client = self.remote
        return {
            "storage_mode": self._mode.value,
            "configured": bool(client and client.config.is_complete()),
            "has_token": bool(client and client.has_credential()),
            "state": client.state.value if client else None,
            "config": client.config.to_dict() if client else None,
            "last_sync_time": (
                client.last_sync_time.isoformat() if client and client.last_sync_time else None
            ),
            "sync": self._sync.to_dict(),
        }

    def push_remote(self) -> SyncStatus:
        """Write the current inventory to the remote file regardless of mode."""
        return self._write_remote("push")

    def pull_remote(self) -> MutationResult:
        """Re-read the remote file and adopt it as the inventory."""
        if self.remote is None or not self.remote.has_credential():
            status = SyncStatus.now(SyncState.SKIPPED, "GitHub token not provided")
            self._sync = status
            return MutationResult(False, ErrorKind.PERSISTENCE, status.message, sync=status)

        records = self._load_remote()
        if records is None:
            return MutationResult(False, ErrorKind.PERSISTENCE, self._sync.message, sync=self._sync)

        try:
            self._write_local(records)
        except StorageError as e:
            logger.error(
                f"Failed to cache pulled inventory locally: {e}", extra={"operation": "pull"}
            )
            return MutationResult(
                False, ErrorKind.PERSISTENCE, f"Could not save changes: {e}", sync=self._sync
            )
        self._records = records
        return MutationResult(
            True, message=f"Loaded {len(records)} records from GitHub", sync=self._sync
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _index_of(self, key: str) -> Optional[int]:
        if not key:
            return None
        for index, record in enumerate(self._records):
            if record.catalog_key == key:
                return index
        return None

    def _check_rename(self, old_key: str, new_key: str) -> Optional[MutationResult]:
        if not new_key:
            return MutationResult(False, ErrorKind.MISSING_CATALOG, "Catalog # is required")
        if new_key != old_key and self._index_of(new_key) is not None:
            return MutationResult(
                False, ErrorKind.DUPLICATE, f"An item with Catalog # {new_key} already exists"
            )
        return None

    def _commit(
        self,
        records: List[SpecimenRecord],
        operation: str,
        catalog: Optional[str],
        message: str,
    ) -> MutationResult:
        """Save ``records`` locally, adopt them, then mirror to the remote."""
        try:
            self._write_local(records)
        except StorageError as e:
            logger.error(
                f"Failed to save inventory locally: {e}",
                extra={"operation": operation, "catalog": catalog},
            )
            return MutationResult(False, ErrorKind.PERSISTENCE, f"Could not save changes: {e}")

        self._records = records
        logger.info(message, extra={"operation": operation, "catalog": catalog})

        sync = None
        if self._mode is StorageMode.REMOTE:
            sync = self._write_remote(operation)
        return MutationResult(True, message=message, sync=sync)

    def _write_local(self, records: List[SpecimenRecord]) -> None:
        payload = json.dumps(
            [record.to_dict() for record in records], ensure_ascii=False, default=str
        )
        self.local.set_item(STORAGE_KEY, payload)

    def _cache_locally(self, records: List[SpecimenRecord], operation: str) -> None:
        try:
            self._write_local(records)
        except StorageError as e:
            logger.warning(
                f"Could not cache inventory locally: {e}", extra={"operation": operation}
            )

    def _write_remote(self, operation: str) -> SyncStatus:
        if self.remote is None or not self.remote.has_credential():
            status = SyncStatus.now(
                SyncState.SKIPPED, "GitHub token not provided; changes saved locally only"
            )
        else:
            try:
                self.remote.write(self.get_all())
            except RemoteError as e:
                status = self._failure_status(e, "save")
                logger.warning(
                    f"Could not save inventory to GitHub: {e}",
                    extra={"operation": operation},
                )
            except Exception as e:
                status = SyncStatus.now(SyncState.FAILED, f"GitHub save failed: {e}")
                logger.error(
                    f"Unexpected error saving inventory to GitHub: {e}",
                    extra={"operation": operation},
                    exc_info=True,
                )
            else:
                status = SyncStatus.now(
                    SyncState.SYNCED, f"Saved {len(self._records)} records to GitHub"
                )
        self._sync = status
        return status

    @staticmethod
    def _failure_status(error: RemoteError, action: str) -> SyncStatus:
        if isinstance(error, RemoteConflictError):
            return SyncStatus.now(
                SyncState.CONFLICT,
                f"GitHub file changed since it was last read; {action} skipped. Pull to refresh.",
            )
        return SyncStatus.now(SyncState.FAILED, f"GitHub {action} failed: {error}")

    def _ensure_remote(self) -> GitHubBlobClient:
        if self.remote is None:
            self.remote = GitHubBlobClient(credentials=SessionCredentials())
        return self.remote

    def _apply_remote_config(self, config: RemoteConfig, settings: Dict[str, Any]) -> None:
        self._ensure_remote().configure(config)
        settings["github"] = config.to_dict()

    def _load_settings(self) -> Dict[str, Any]:
        try:
            text = self.local.get_item(SETTINGS_KEY)
            settings = json.loads(text) if text else {}
        except (StorageError, ValueError) as e:
            logger.warning(f"Could not read settings: {e}", extra={"operation": "settings"})
            return {}
        return settings if isinstance(settings, dict) else {}

    def _save_settings(self, settings: Dict[str, Any]) -> None:
        try:
            self.local.set_item(SETTINGS_KEY, json.dumps(settings))
        except StorageError as e:
            logger.warning(f"Could not save settings: {e}", extra={"operation": "settings"})


__all__ = [
    "ErrorKind",
    "MutationResult",
    "RecordStore",
    "SETTINGS_KEY",
    "STORAGE_KEY",
    "SyncState",
    "SyncStatus",
    "specimen_count",
]
