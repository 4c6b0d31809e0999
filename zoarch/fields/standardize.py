"""
Column name standardization for imported inventory rows.

Spreadsheets from different lab members name the same column differently
("catalog_no", "cat_no", "Catalog #"). Imported rows are mapped onto the
canonical column names used throughout the catalog before they reach the
record store.
"""

from typing import Any, Dict, Iterable, List, Mapping

# Canonical column -> accepted alias spellings (exact, case-sensitive)
FIELD_ALIASES: Dict[str, List[str]] = {
    "Owner": ["owner", "owner_id", "ownerid"],
    "Catalog #": ["catalog", "catalog_number", "cat_no", "catalog_no", "catalogno"],
    "Order": ["order", "order_name", "taxon_order"],
    "Family": ["family", "family_name", "taxon_family"],
    "Genus": ["genus", "genus_name", "taxon_genus"],
    "Species": ["species", "species_name", "taxon_species", "specific_name"],
    "Common Name": ["common_name", "commonname", "common", "vernacular"],
    "# of specimens": [
        "specimens",
        "specimen_count",
        "count",
        "number_of_specimens",
        "quantity",
    ],
    "Location": ["location", "locality", "site", "collection_site"],
    "Country": ["country", "nation", "country_name"],
    "How collected": ["collected", "collection_method", "acquisition", "how_collected"],
    "Date collected": ["date", "collection_date", "date_collected"],
}


def standardize_row(
    row: Mapping[str, Any],
    aliases: Mapping[str, List[str]] = FIELD_ALIASES,
) -> Dict[str, Any]:
    """
    Map one imported row onto canonical column names.

    Each canonical column is taken from the row under its own name if present,
    otherwise from the first alias present. Columns that were not consumed as
    an alias are copied through unchanged, so unknown data is never lost.
    Standardizing an already standardized row returns an equal row.

    Args:
        row: Raw row keyed by spreadsheet header
        aliases: Canonical column -> alias spellings

    Returns:
        New row with canonical columns first, then the remaining columns
    """
    result: Dict[str, Any] = {}
    claimed = set()

    for canonical, alternates in aliases.items():
        if canonical in row:
            result[canonical] = row[canonical]
            claimed.add(canonical)
            continue
        for alias in alternates:
            if alias in row:
                result[canonical] = row[alias]
                claimed.add(alias)
                break

    for key, value in row.items():
        if key not in claimed and key not in result:
            result[key] = value

    return result


def standardize_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Standardize every row of an import."""
    return [standardize_row(row) for row in rows]
