"""
Tests for search, filtering, taxonomic grouping and pagination helpers.
"""

import pytest

from zoarch.records import (
    OTHER_GROUP,
    filter_records,
    paginate,
    search_records,
    taxonomic_group,
)

RECORDS = [
    {"Catalog #": "1", "Class": "Mammalia", "Order": "Carnivora", "Family": "Canidae",
     "Common Name": "Coyote", "Country": "USA", "State/Province": "California"},
    {"Catalog #": "2", "Class": "Aves", "Order": "Strigiformes", "Family": "Strigidae",
     "Common Name": "Great Horned Owl", "Country": "USA", "State/Province": "Arizona"},
    {"Catalog #": "3", "Class": "Gastropoda", "Order": "Littorinimorpha", "Family": "Haliotidae",
     "Common Name": "Red Abalone", "Country": "Mexico"},
    {"Catalog #": "4", "Common Name": "Unknown bone"},
]


def _ids(records):
    return [r["Catalog #"] for r in records]


class TestSearchRecords:
    def test_case_insensitive_substring(self):
        assert _ids(search_records(RECORDS, {"Common Name": "OWL"})) == ["2"]

    def test_all_criteria_must_match(self):
        assert _ids(search_records(RECORDS, {"Country": "usa", "Family": "cani"})) == ["1"]

    def test_blank_criteria_are_ignored(self):
        assert _ids(search_records(RECORDS, {"Country": ""})) == ["1", "2", "3", "4"]

    def test_missing_field_never_matches(self):
        assert _ids(search_records(RECORDS, {"Class": "a"})) == ["1", "2", "3"]


class TestFilterRecords:
    def test_free_text_over_all_fields(self):
        assert _ids(filter_records(RECORDS, "mexico")) == ["3"]

    def test_free_text_single_field(self):
        assert _ids(filter_records(RECORDS, "usa", "Common Name")) == []
        assert _ids(filter_records(RECORDS, "usa", "Country")) == ["1", "2"]

    def test_blank_term_matches_all(self):
        assert len(filter_records(RECORDS, "  ")) == 4

    def test_taxonomic_filters_are_exact(self):
        assert _ids(filter_records(RECORDS, class_name="Aves")) == ["2"]
        assert _ids(filter_records(RECORDS, order="Carniv")) == []
        assert _ids(filter_records(RECORDS, family="Haliotidae")) == ["3"]

    def test_geographic_filters(self):
        assert _ids(filter_records(RECORDS, country="USA", state="Arizona")) == ["2"]

    def test_combined_with_text(self):
        assert _ids(filter_records(RECORDS, "coyote", country="USA")) == ["1"]

    def test_group_filter(self):
        assert _ids(filter_records(RECORDS, group="Mammals")) == ["1"]
        assert _ids(filter_records(RECORDS, group=OTHER_GROUP)) == ["3"]


class TestTaxonomicGroup:
    @pytest.mark.parametrize(
        "order, group",
        [
            ("Carnivora", "Mammals"),
            ("Perciformes", "Fish/Marine Life"),
            ("Strigiformes", "Birds"),
            ("Testudines", "Reptiles/Amphibians"),
            ("Coleoptera", "Invertebrates"),
            ("Littorinimorpha", OTHER_GROUP),
        ],
    )
    def test_known_orders(self, order, group):
        assert taxonomic_group({"Order": order}) == group

    def test_blank_order_has_no_group(self):
        assert taxonomic_group({"Order": " "}) is None
        assert taxonomic_group({}) is None


class TestPaginate:
    def test_first_page(self):
        page = paginate(list(range(45)), page=1, per_page=20)
        assert page["items"] == list(range(20))
        assert page["total"] == 45
        assert page["pages"] == 3

    def test_last_partial_page(self):
        assert paginate(list(range(45)), page=3, per_page=20)["items"] == list(range(40, 45))

    def test_out_of_range_page_is_empty(self):
        assert paginate([1, 2], page=5, per_page=20)["items"] == []

    def test_page_below_one_is_clamped(self):
        assert paginate([1, 2], page=0, per_page=1)["items"] == [1]

    def test_empty(self):
        assert paginate([], 1, 10) == {
            "items": [], "page": 1, "per_page": 10, "total": 0, "pages": 0
        }

    def test_invalid_per_page(self):
        with pytest.raises(ValueError):
            paginate([1], per_page=0)
