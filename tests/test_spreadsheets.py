"""
Tests for spreadsheet import/export (CSV and Excel via pyexcel).
"""

from datetime import date

import pytest

from io_utils.spreadsheets import (
    collect_headers,
    export_filename,
    file_type_for,
    read_records,
    read_records_from_file,
    write_records,
)
from zoarch.core.protocols import ExportFormat

ROWS = [
    {"Catalog #": "007", "Genus": "Canis", "Date collected": "2015-03-12"},
    {"Catalog #": "ZL-2", "Genus": "Bubo", "Date collected": "2018-06-21"},
]


class TestFileType:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("inventory.csv", ExportFormat.CSV),
            ("INVENTORY.CSV", ExportFormat.CSV),
            ("inventory.xlsx", ExportFormat.EXCEL),
            ("inventory.xls", ExportFormat.EXCEL),
        ],
    )
    def test_file_type_for(self, name, expected):
        assert file_type_for(name) is expected

    def test_export_filename(self):
        assert export_filename(ExportFormat.CSV, date(2024, 5, 1)) == "zoarch_inventory_2024-05-01.csv"
        assert export_filename("xlsx", date(2024, 5, 1)) == "zoarch_inventory_2024-05-01.xlsx"


class TestHeaders:
    def test_ordered_union(self):
        records = [{"a": 1, "b": 2}, {"c": 3, "a": 4}]
        assert collect_headers(records) == ["a", "b", "c"]

    def test_empty(self):
        assert collect_headers([]) == []


class TestCSV:
    def test_round_trip_keeps_text(self):
        content = write_records(ROWS, ExportFormat.CSV)
        assert isinstance(content, bytes)
        assert read_records(content, ExportFormat.CSV) == ROWS

    def test_header_is_first_line(self):
        content = write_records(ROWS, ExportFormat.CSV).decode("utf-8")
        assert content.splitlines()[0] == "Catalog #,Genus,Date collected"

    def test_missing_values_written_empty(self):
        content = write_records([{"a": "1"}, {"b": "2"}], ExportFormat.CSV).decode("utf-8")
        lines = content.splitlines()
        assert lines[0] == "a,b"
        assert lines[1] == "1,"
        assert lines[2] == ",2"

    def test_reads_utf8_bom_and_strips_headers(self):
        content = "\ufeffCatalog # , Genus\nZL-1,Canis\n".encode("utf-8")
        assert read_records(content, "csv") == [{"Catalog #": "ZL-1", "Genus": "Canis"}]

    def test_blank_rows_dropped(self):
        content = b"Catalog #,Genus\nZL-1,Canis\n,\nZL-2,Bubo\n"
        assert [r["Catalog #"] for r in read_records(content, "csv")] == ["ZL-1", "ZL-2"]

    def test_empty_inventory_still_has_header(self):
        content = write_records([], ExportFormat.CSV).decode("utf-8")
        assert content.splitlines()[0] == "Catalog #"

    def test_read_from_file(self, tmp_path):
        path = tmp_path / "import.csv"
        path.write_bytes(write_records(ROWS, ExportFormat.CSV))
        assert read_records_from_file(path) == ROWS


class TestExcel:
    def test_round_trip(self):
        content = write_records(ROWS, ExportFormat.EXCEL)
        assert content[:2] == b"PK"
        assert read_records(content, ExportFormat.EXCEL) == ROWS

    def test_read_from_file(self, tmp_path):
        path = tmp_path / "import.xlsx"
        path.write_bytes(write_records(ROWS, ExportFormat.EXCEL))
        assert read_records_from_file(path) == ROWS
