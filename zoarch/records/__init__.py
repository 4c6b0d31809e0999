"""
Specimen inventory: the record store plus its search helpers.

Usage:
    from zoarch.records import create_store

    store = create_store(get_config())
    store.initialize()
"""

from zoarch.core.protocols import RemoteConfig
from zoarch.core.storage import create_storage
from zoarch.remote import GitHubBlobClient, SessionCredentials

from .search import (
    OTHER_GROUP,
    TAXONOMIC_GROUPS,
    editor_group,
    filter_records,
    group_tab_counts,
    paginate,
    search_records,
    taxonomic_group,
)
from .store import (
    ErrorKind,
    MutationResult,
    RecordStore,
    SyncState,
    SyncStatus,
    specimen_count,
)

__all__ = [
    "ErrorKind",
    "MutationResult",
    "OTHER_GROUP",
    "RecordStore",
    "SyncState",
    "SyncStatus",
    "TAXONOMIC_GROUPS",
    "create_store",
    "editor_group",
    "filter_records",
    "group_tab_counts",
    "paginate",
    "search_records",
    "specimen_count",
    "taxonomic_group",
]


def create_store(config) -> RecordStore:
    """Factory function wiring a RecordStore from application config.

    Args:
        config: Config class (see zoarch.config)

    Returns:
        Uninitialized RecordStore; call initialize() before use
    """
    local = create_storage(config.STORAGE_BACKEND, config.storage_config())
    settings = config.github_settings()
    remote = GitHubBlobClient.from_settings(
        RemoteConfig.from_dict(settings),
        SessionCredentials.from_env(),
        settings,
    )
    return RecordStore(local, remote, demo_path=config.DEMO_DATA)
