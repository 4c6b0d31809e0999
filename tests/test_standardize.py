"""
Tests for import column standardization.
"""

from zoarch.fields import FIELD_ALIASES, standardize_row, standardize_rows


class TestStandardizeRow:
    def test_alias_is_renamed(self):
        row = {"cat_no": "ZL-1", "genus": "Canis", "locality": "Desert"}
        assert standardize_row(row) == {
            "Catalog #": "ZL-1",
            "Genus": "Canis",
            "Location": "Desert",
        }

    def test_canonical_name_wins_over_alias(self):
        row = {"catalog": "old", "Catalog #": "new"}
        result = standardize_row(row)
        assert result["Catalog #"] == "new"
        # the alias was not consumed, so it is kept as-is
        assert result["catalog"] == "old"

    def test_first_alias_in_list_order_wins(self):
        row = {"catalog_no": "second", "catalog": "first"}
        result = standardize_row(row)
        assert result["Catalog #"] == "first"
        assert result["catalog_no"] == "second"

    def test_unknown_columns_are_preserved(self):
        row = {"Catalog #": "ZL-1", "Drawer": "B4", "Notes": ""}
        result = standardize_row(row)
        assert result["Drawer"] == "B4"
        assert result["Notes"] == ""

    def test_alias_matching_is_case_sensitive(self):
        row = {"GENUS": "Canis"}
        assert standardize_row(row) == {"GENUS": "Canis"}

    def test_specimen_count_aliases(self):
        assert standardize_row({"quantity": "3"}) == {"# of specimens": "3"}

    def test_empty_row(self):
        assert standardize_row({}) == {}

    def test_does_not_modify_input(self):
        row = {"cat_no": "ZL-1"}
        standardize_row(row)
        assert row == {"cat_no": "ZL-1"}

    def test_idempotent(self):
        rows = [
            {"cat_no": "ZL-1", "genus": "Canis", "extra": 1},
            {"catalog": "a", "Catalog #": "b", "date": "2001"},
            {"Owner": "Lab", "owner": "other"},
        ]
        for row in rows:
            once = standardize_row(row)
            assert standardize_row(once) == once

    def test_custom_alias_table(self):
        aliases = {"Catalog #": ["id"]}
        assert standardize_row({"id": 7, "genus": "x"}, aliases) == {
            "Catalog #": 7,
            "genus": "x",
        }


def test_every_canonical_field_has_aliases():
    assert all(FIELD_ALIASES[name] for name in FIELD_ALIASES)


def test_standardize_rows_maps_each_row():
    rows = [{"species": "latrans"}, {"country": "USA"}]
    assert standardize_rows(rows) == [{"Species": "latrans"}, {"Country": "USA"}]
