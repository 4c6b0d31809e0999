from .spreadsheets import (
    MIME_TYPES,
    collect_headers,
    export_filename,
    file_type_for,
    read_records,
    read_records_from_file,
    write_records,
)

__all__ = [
    "MIME_TYPES",
    "collect_headers",
    "export_filename",
    "file_type_for",
    "read_records",
    "read_records_from_file",
    "write_records",
]
