from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from io_utils.spreadsheets import export_filename, file_type_for, read_records_from_file
from zoarch.config import get_config
from zoarch.core.protocols import ExportFormat, ImportMode, StorageMode
from zoarch.logging_config import configure_logging
from zoarch.records import RecordStore, SyncState, create_store

app = typer.Typer(help="ZOARCH specimen catalog")


def _open_store(use_remote: Optional[bool]) -> RecordStore:
    """Load the inventory the same way the server does."""
    config = get_config()
    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)
    store = create_store(config)
    store.initialize(use_remote=config.USE_REMOTE if use_remote is None else use_remote)
    return store


def _report_sync(store: RecordStore) -> None:
    sync = store.sync_status
    if sync.state in (SyncState.FAILED, SyncState.CONFLICT):
        typer.secho(f"Warning: {sync.message}", fg=typer.colors.YELLOW, err=True)
    elif sync.state is SyncState.SYNCED:
        typer.echo(sync.message)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the catalog API."""
    config = get_config()
    configure_logging(level=config.LOG_LEVEL, json_format=config.LOG_JSON)
    typer.echo(f"Serving ZOARCH catalog on http://{host or config.HOST}:{port or config.PORT}")
    uvicorn.run(
        "zoarch.web.api:create_app_from_config",
        factory=True,
        host=host or config.HOST,
        port=port or config.PORT,
        reload=reload,
        log_level=config.LOG_LEVEL.lower(),
    )


@app.command("import-file")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or Excel file"),
    replace: bool = typer.Option(False, "--replace", help="Replace the inventory instead of appending"),
    remote: Optional[bool] = typer.Option(None, "--remote/--local", help="Override storage mode"),
) -> None:
    """Import records from a spreadsheet."""
    store = _open_store(remote)
    rows = read_records_from_file(path)
    if not rows:
        typer.secho(f"No data rows found in {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    result = store.import_from(rows, ImportMode.REPLACE if replace else ImportMode.APPEND)
    if not result:
        typer.secho(f"Import failed: {result.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    typer.echo(result.message)
    if result.details.get("skipped"):
        typer.echo(f"Skipped {result.details['skipped']} rows with duplicate catalog numbers")
    _report_sync(store)


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (default: zoarch_inventory_<date>.xlsx)"
    ),
    remote: Optional[bool] = typer.Option(None, "--remote/--local", help="Override storage mode"),
) -> None:
    """Export the inventory to Excel or CSV (chosen by the output extension)."""
    store = _open_store(remote)
    if output is None:
        output = Path(export_filename(ExportFormat.EXCEL))
    output.write_bytes(store.export_snapshot(file_type_for(output.name)))
    typer.echo(f"Exported {len(store)} records to {output}")


@app.command()
def stats(
    remote: Optional[bool] = typer.Option(None, "--remote/--local", help="Override storage mode"),
) -> None:
    """Print summary statistics as JSON."""
    store = _open_store(remote)
    typer.echo(json.dumps(store.get_summary_stats(), indent=2))


@app.command()
def incomplete(
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only one taxonomic group"),
    remote: Optional[bool] = typer.Option(None, "--remote/--local", help="Override storage mode"),
) -> None:
    """List records that are missing tracked fields."""
    store = _open_store(remote)
    records = store.get_incomplete_records(group)
    for record in records:
        typer.echo(f"{record.get('Catalog #', '(no catalog #)')}: {record.get('Common Name', '')}")
    typer.echo(f"{len(records)} incomplete records")


@app.command()
def mode(
    value: Optional[StorageMode] = typer.Argument(None, help="local or remote"),
) -> None:
    """Show or set the storage mode."""
    store = _open_store(None)
    if value is not None:
        store.set_storage_mode(value)
    typer.echo(store.get_storage_mode().value)


@app.command()
def push() -> None:
    """Write the local inventory to the GitHub file."""
    store = _open_store(False)
    status = store.push_remote()
    if status.state is not SyncState.SYNCED:
        typer.secho(status.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.echo(status.message)


@app.command()
def pull() -> None:
    """Replace the local inventory with the GitHub file."""
    store = _open_store(False)
    result = store.pull_remote()
    if not result:
        typer.secho(result.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.echo(result.message)


if __name__ == "__main__":
    app()
