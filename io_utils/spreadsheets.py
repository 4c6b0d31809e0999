from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pyexcel

from zoarch.core.protocols import ExportFormat
from zoarch.core.schema import CATALOG_FIELD

SHEET_NAME = "Inventory"
EXPORT_PREFIX = "zoarch_inventory"

MIME_TYPES = {
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.CSV: "text/csv",
}

# CSV cells stay text; catalog numbers like "007" must not become 7
_CSV_READ_OPTIONS = {
    "auto_detect_int": False,
    "auto_detect_float": False,
    "auto_detect_datetime": False,
}


def file_type_for(filename: str) -> ExportFormat:
    """Pick the spreadsheet format from a file name; anything but .csv is Excel."""
    if Path(filename).suffix.lower() == ".csv":
        return ExportFormat.CSV
    return ExportFormat.EXCEL


def _clean_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def read_records(content: bytes | str, file_type: ExportFormat | str) -> List[Dict[str, Any]]:
    """
    Parse spreadsheet bytes into row dicts keyed by the header row.

    Blank rows are dropped and date cells become ISO strings so the rows can be
    stored as JSON.
    """
    fmt = ExportFormat(file_type)
    if fmt is ExportFormat.CSV:
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig")
        rows = pyexcel.get_records(file_type="csv", file_content=content, **_CSV_READ_OPTIONS)
    else:
        rows = pyexcel.get_records(file_type="xlsx", file_content=content)

    records: List[Dict[str, Any]] = []
    for row in rows:
        cleaned = {str(k).strip(): _clean_cell(v) for k, v in row.items() if str(k).strip()}
        if all(v is None or str(v).strip() == "" for v in cleaned.values()):
            continue
        records.append(cleaned)
    return records


def read_records_from_file(path: Path) -> List[Dict[str, Any]]:
    """Parse a CSV or Excel file from disk."""
    return read_records(Path(path).read_bytes(), file_type_for(str(path)))


def collect_headers(records: Iterable[Dict[str, Any]]) -> List[str]:
    """Ordered union of keys across all records (first appearance wins)."""
    headers: Dict[str, None] = {}
    for record in records:
        for key in record:
            headers.setdefault(key, None)
    return list(headers)


def write_records(records: List[Dict[str, Any]], file_type: ExportFormat | str) -> bytes:
    """Serialize records to CSV or Excel bytes with a single header row."""
    fmt = ExportFormat(file_type)
    headers = collect_headers(records) or [CATALOG_FIELD]
    array: List[List[Any]] = [list(headers)]
    for record in records:
        array.append(["" if record.get(h) is None else record.get(h) for h in headers])

    sheet = pyexcel.Sheet(array, name=SHEET_NAME)
    content = getattr(sheet, fmt.value)
    if isinstance(content, str):
        content = content.encode("utf-8")
    return content


def export_filename(file_type: ExportFormat | str, day: date | None = None) -> str:
    """Download name with the export date embedded, e.g. zoarch_inventory_2024-05-01.csv."""
    fmt = ExportFormat(file_type)
    day = day or date.today()
    return f"{EXPORT_PREFIX}_{day.isoformat()}.{fmt.value}"


__all__ = [
    "MIME_TYPES",
    "collect_headers",
    "export_filename",
    "file_type_for",
    "read_records",
    "read_records_from_file",
    "write_records",
]
