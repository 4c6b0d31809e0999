"""
Specimen record schema for the ZOARCH lab inventory.

Records are schema-less mappings keyed by spreadsheet column names. A small
subset of columns matters to the catalog:

- ``Catalog #``: the unique identifier of a record
- Tracked fields: the nine columns that decide whether a record is complete

These are promoted to named attributes on :class:`SpecimenRecord`; every other
column travels untouched in ``extra`` so imports and exports never lose data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

CATALOG_FIELD = "Catalog #"
OWNER_FIELD = "Owner"
SPECIMEN_COUNT_FIELD = "# of specimens"

# Columns that must be filled for a record to count as complete
TRACKED_FIELDS = [
    "Order",
    "Family",
    "Genus",
    "Species",
    "Common Name",
    "Location",
    "Country",
    "How collected",
    "Date collected",
]

# Columns shown in the incomplete-records editor
EDITOR_FIELDS = [CATALOG_FIELD, OWNER_FIELD] + TRACKED_FIELDS

# Columns used by summaries but not tracked for completeness
CLASS_FIELD = "Class"
STATE_FIELD = "State/Province"

# Column name -> attribute name on SpecimenRecord
_NAMED_COLUMNS = {
    CATALOG_FIELD: "catalog_number",
    "Order": "order",
    "Family": "family",
    "Genus": "genus",
    "Species": "species",
    "Common Name": "common_name",
    "Location": "location",
    "Country": "country",
    "How collected": "how_collected",
    "Date collected": "date_collected",
}


def is_blank(value: Any) -> bool:
    """Return True for missing values and strings that are empty after trimming."""
    return value is None or str(value).strip() == ""


def catalog_key(value: Any) -> str:
    """Comparison key for catalog numbers (string-coerced, trimmed)."""
    if value is None:
        return ""
    return str(value).strip()


def missing_fields(record: Mapping[str, Any]) -> List[str]:
    """Tracked fields that are missing or blank in ``record``."""
    return [name for name in TRACKED_FIELDS if is_blank(record.get(name))]


def is_complete(record: Mapping[str, Any]) -> bool:
    """A record is complete when every tracked field has a value."""
    return not missing_fields(record)


@dataclass
class SpecimenRecord:
    """
    One specimen's catalog entry.

    Named attributes hold the catalog number and the tracked fields; a value of
    ``None`` means the column is absent. Any other column lives in ``extra``
    under its original name.
    """

    catalog_number: Any = None
    order: Any = None
    family: Any = None
    genus: Any = None
    species: Any = None
    common_name: Any = None
    location: Any = None
    country: Any = None
    how_collected: Any = None
    date_collected: Any = None

    extra: Dict[str, Any] = field(default_factory=dict)

    # Original column order, so exports keep the layout of the source sheet
    _columns: List[str] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpecimenRecord":
        """Build a record from a row mapping."""
        record = cls()
        for column, value in data.items():
            record.set(str(column), value)
        return record

    def get(self, column: str, default: Any = None) -> Any:
        """Read a column by its spreadsheet name."""
        attr = _NAMED_COLUMNS.get(column)
        if attr is not None:
            value = getattr(self, attr)
            return default if value is None else value
        return self.extra.get(column, default)

    def set(self, column: str, value: Any) -> None:
        """Write a column by its spreadsheet name."""
        attr = _NAMED_COLUMNS.get(column)
        if attr is not None:
            setattr(self, attr, value)
        else:
            self.extra[column] = value
        if column not in self._columns:
            self._columns.append(column)

    def merge(self, changes: Mapping[str, Any]) -> None:
        """Apply a partial update; columns not in ``changes`` are left alone."""
        for column, value in changes.items():
            self.set(str(column), value)

    @property
    def catalog_key(self) -> str:
        return catalog_key(self.catalog_number)

    def missing_fields(self) -> List[str]:
        return missing_fields(self.to_dict())

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to a row mapping in original column order."""
        result: Dict[str, Any] = {}
        for column in self._columns:
            value = self.get(column)
            if value is not None:
                result[column] = value
        return result

    def copy(self) -> "SpecimenRecord":
        return SpecimenRecord.from_dict(self.to_dict())


__all__ = [
    "CATALOG_FIELD",
    "OWNER_FIELD",
    "SPECIMEN_COUNT_FIELD",
    "TRACKED_FIELDS",
    "EDITOR_FIELDS",
    "CLASS_FIELD",
    "STATE_FIELD",
    "SpecimenRecord",
    "catalog_key",
    "is_blank",
    "is_complete",
    "missing_fields",
]
