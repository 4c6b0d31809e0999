"""
Catalog API

JSON API over a single RecordStore: browse, search and edit specimen records,
import and export spreadsheets, read summary statistics and chart data, and
control GitHub synchronization.

Read-only handlers are ``async def`` and run on the event loop. Handlers that
change the inventory or talk to GitHub are plain ``def`` so FastAPI runs them in
its threadpool, and they take ``write_lock`` so mutations stay one at a time.
A slow GitHub call therefore never stalls reads or the health check.
"""

import logging
import os
import threading
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from io_utils.spreadsheets import MIME_TYPES, export_filename, file_type_for, read_records
from zoarch import __version__
from zoarch.charts import chart_data
from zoarch.config import get_config
from zoarch.core.protocols import ExportFormat, ImportMode, RemoteConfig, StorageMode
from zoarch.core.schema import EDITOR_FIELDS
from zoarch.middleware import RequestTrackingMiddleware, SecurityHeadersMiddleware
from zoarch.records import ErrorKind, MutationResult, RecordStore, create_store, paginate

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.MISSING_CATALOG: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERSISTENCE: status.HTTP_507_INSUFFICIENT_STORAGE,
}


# ============================================================================
# Pydantic Models for API
# ============================================================================


class SearchRequest(BaseModel):
    criteria: Dict[str, Any]


class BulkUpdateRequest(BaseModel):
    changes: Dict[str, Dict[str, Any]]


class RowsImportRequest(BaseModel):
    rows: List[Dict[str, Any]]
    mode: ImportMode = ImportMode.APPEND


class StorageModeRequest(BaseModel):
    mode: StorageMode


class RemoteConfigRequest(BaseModel):
    owner: str
    repo: str
    branch: str = "main"
    path: str = "data/inventory.json"


class TokenRequest(BaseModel):
    token: str


def _raise_for(result: MutationResult) -> None:
    if not result.ok:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST),
            detail=result.message,
        )


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    store: RecordStore,
    allowed_origins: Optional[List[str]] = None,
) -> FastAPI:
    """
    Create the catalog FastAPI application.

    Args:
        store: Initialized record store the API operates on
        allowed_origins: CORS origins; defaults to ALLOWED_ORIGINS or localhost

    Returns:
        Configured FastAPI app
    """
    development = os.environ.get("ENVIRONMENT", "development") == "development"
    app = FastAPI(
        title="ZOARCH Specimen Catalog API",
        description="Inventory of zooarchaeology lab specimens",
        version=__version__,
        docs_url="/docs" if development else None,
        redoc_url="/redoc" if development else None,
    )

    if allowed_origins is None:
        allowed_origins = os.environ.get(
            "ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000"
        ).split(",")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTrackingMiddleware)

    app.state.store = store
    write_lock = threading.Lock()

    # ========================================================================
    # Health
    # ========================================================================

    @app.get("/api/v1/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "records": len(store),
            "storage_mode": store.get_storage_mode().value,
        }

    # ========================================================================
    # Records
    # ========================================================================

    @app.get("/api/v1/records")
    async def list_records(
        q: str = "",
        field: str = "all",
        class_name: Optional[str] = None,
        order: Optional[str] = None,
        family: Optional[str] = None,
        country: Optional[str] = None,
        state: Optional[str] = None,
        group: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ):
        """Filtered, paginated inventory."""
        if per_page < 1 or per_page > 500:
            raise HTTPException(400, "per_page must be between 1 and 500")
        records = store.filter(
            q,
            field,
            class_name=class_name,
            order=order,
            family=family,
            country=country,
            state=state,
            group=group,
        )
        return paginate(records, page, per_page)

    @app.get("/api/v1/records/recent")
    async def recent_records(limit: int = 5):
        return {"records": store.recent(limit)}

    @app.post("/api/v1/records/search")
    async def search_records(request: SearchRequest):
        """Every criterion must match as a case-insensitive substring."""
        results = store.search(request.criteria)
        return {"records": results, "total": len(results)}

    @app.post("/api/v1/records/bulk-update")
    def bulk_update(request: BulkUpdateRequest):
        """Save edits to several records at once (incomplete-records editor)."""
        with write_lock:
            result = store.update_many(request.changes)
        _raise_for(result)
        return result.to_dict()

    @app.get("/api/v1/records/{catalog_id}")
    async def get_record(catalog_id: str):
        record = store.get_by_catalog(catalog_id)
        if record is None:
            raise HTTPException(404, f"No item with Catalog # {catalog_id}")
        return record

    @app.post("/api/v1/records", status_code=status.HTTP_201_CREATED)
    def add_record(record: Dict[str, Any]):
        with write_lock:
            result = store.add(record)
        _raise_for(result)
        return result.to_dict()

    @app.patch("/api/v1/records/{catalog_id}")
    def update_record(catalog_id: str, changes: Dict[str, Any]):
        with write_lock:
            result = store.update(catalog_id, changes)
        _raise_for(result)
        body = result.to_dict()
        body["record"] = store.get_by_catalog(changes.get("Catalog #", catalog_id))
        return body

    @app.delete("/api/v1/records/{catalog_id}")
    def delete_record(catalog_id: str):
        with write_lock:
            result = store.delete(catalog_id)
        _raise_for(result)
        return result.to_dict()

    # ========================================================================
    # Import / Export
    # ========================================================================

    def _locked_import(rows: List[Dict[str, Any]], mode: ImportMode) -> MutationResult:
        with write_lock:
            return store.import_from(rows, mode)

    @app.post("/api/v1/import")
    async def import_file(
        request: Request,
        filename: str,
        mode: ImportMode = ImportMode.APPEND,
    ):
        """
        Import a CSV or Excel file sent as the raw request body.

        The format is chosen from ``filename``'s extension.
        """
        content = await request.body()
        if not content:
            raise HTTPException(400, "Empty upload")

        try:
            rows = read_records(content, file_type_for(filename))
        except Exception as e:
            logger.warning(f"Could not parse uploaded file {filename}: {e}")
            raise HTTPException(400, f"Could not read spreadsheet: {e}")

        if not rows:
            raise HTTPException(400, "The file contains no data rows")

        result = await run_in_threadpool(_locked_import, rows, mode)
        _raise_for(result)
        return result.to_dict()

    @app.post("/api/v1/import/rows")
    def import_rows(request: RowsImportRequest):
        """Import already-parsed rows."""
        result = _locked_import(request.rows, request.mode)
        _raise_for(result)
        return result.to_dict()

    @app.get("/api/v1/export")
    async def export(format: ExportFormat = ExportFormat.EXCEL):
        content = store.export_snapshot(format)
        return Response(
            content=content,
            media_type=MIME_TYPES[format],
            headers={
                "Content-Disposition": f'attachment; filename="{export_filename(format)}"'
            },
        )

    # ========================================================================
    # Statistics and charts
    # ========================================================================

    @app.get("/api/v1/stats")
    async def stats():
        return store.get_summary_stats()

    @app.get("/api/v1/incomplete")
    async def incomplete(group: Optional[str] = None):
        """Incomplete records for the editor, optionally one taxonomic tab."""
        records = store.get_incomplete_records(group)
        return {
            "records": records,
            "total": len(records),
            "groups": store.incomplete_group_counts(),
            "fields": EDITOR_FIELDS,
        }

    @app.get("/api/v1/unique/{field_name:path}")
    async def unique_values(field_name: str):
        return {"field": field_name, "values": store.get_unique_values(field_name)}

    @app.get("/api/v1/charts")
    async def charts():
        return chart_data(store.get_all())

    # ========================================================================
    # Storage mode and GitHub sync
    # ========================================================================

    @app.get("/api/v1/storage-mode")
    async def get_storage_mode():
        return {"mode": store.get_storage_mode().value}

    @app.put("/api/v1/storage-mode")
    def set_storage_mode(request: StorageModeRequest):
        with write_lock:
            mode = store.set_storage_mode(request.mode)
        return {"mode": mode.value}

    @app.get("/api/v1/remote")
    async def remote_status():
        return store.remote_info()

    @app.put("/api/v1/remote/config")
    def configure_remote(request: RemoteConfigRequest):
        if not request.owner.strip() or not request.repo.strip():
            raise HTTPException(400, "Owner and repository are required")
        config = RemoteConfig(
            owner=request.owner.strip(),
            repo=request.repo.strip(),
            branch=request.branch.strip() or "main",
            path=request.path.strip() or "data/inventory.json",
        )
        with write_lock:
            store.configure_remote(config)
        return store.remote_info()

    @app.put("/api/v1/remote/token")
    def set_token(request: TokenRequest):
        """Hold the token for this server session; it is never saved."""
        try:
            with write_lock:
                store.set_remote_token(request.token)
        except ValueError as e:
            raise HTTPException(400, str(e))
        return store.remote_info()

    @app.post("/api/v1/remote/push")
    def push_remote():
        with write_lock:
            return store.push_remote().to_dict()

    @app.post("/api/v1/remote/pull")
    def pull_remote():
        with write_lock:
            result = store.pull_remote()
        if not result.ok:
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, result.message)
        return result.to_dict()

    return app


def create_app_from_config() -> FastAPI:
    """Build and initialize a store from the environment, then wrap it in the API."""
    config = get_config()
    store = create_store(config)
    store.initialize(use_remote=config.USE_REMOTE)
    return create_app(store, allowed_origins=config.ALLOWED_ORIGINS)
