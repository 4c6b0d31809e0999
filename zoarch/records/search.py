"""
Search, filter and pagination over record snapshots.

All functions are pure: they take a list of row dicts and return a new list
(or a page of one) without touching the input.
"""

from typing import Any, Dict, List, Mapping, Optional

from zoarch.core.schema import CLASS_FIELD, STATE_FIELD, is_blank

ALL_FIELDS = "all"

# Orders grouped for the inventory tabs
TAXONOMIC_GROUPS: Dict[str, List[str]] = {
    "Mammals": [
        "Artiodactyla",
        "Carnivora",
        "Cetacea",
        "Chiroptera",
        "Primates",
        "Rodentia",
        "Lagomorpha",
        "Proboscidea",
    ],
    "Fish/Marine Life": [
        "Carcharhiniformes",
        "Perciformes",
        "Tetraodontiformes",
        "Siluriformes",
        "Cypriniformes",
        "Salmoniformes",
    ],
    "Birds": [
        "Passeriformes",
        "Falconiformes",
        "Strigiformes",
        "Anseriformes",
        "Psittaciformes",
        "Columbiformes",
    ],
    "Reptiles/Amphibians": ["Squamata", "Testudines", "Crocodilia", "Anura", "Caudata"],
    "Invertebrates": [
        "Araneae",
        "Coleoptera",
        "Lepidoptera",
        "Hymenoptera",
        "Diptera",
        "Decapoda",
        "Gastropoda",
    ],
}
OTHER_GROUP = "Other/Unclassified"

_ORDER_TO_GROUP = {
    order: group for group, orders in TAXONOMIC_GROUPS.items() for order in orders
}


def _contains(value: Any, needle: str) -> bool:
    return not is_blank(value) and needle in str(value).lower()


def taxonomic_group(record: Mapping[str, Any]) -> Optional[str]:
    """Tab a record belongs to by its Order; None when Order is blank."""
    order = record.get("Order")
    if is_blank(order):
        return None
    return _ORDER_TO_GROUP.get(str(order).strip(), OTHER_GROUP)


def editor_group(record: Mapping[str, Any]) -> str:
    """Incomplete-records tab for a record; a blank Order counts as Other/Unclassified."""
    return taxonomic_group(record) or OTHER_GROUP


def group_tab_counts(records: List[Dict[str, Any]]) -> Dict[str, int]:
    """Records per editor tab, every tab listed even when empty."""
    counts = {name: 0 for name in list(TAXONOMIC_GROUPS) + [OTHER_GROUP]}
    for record in records:
        counts[editor_group(record)] += 1
    return counts


def search_records(
    records: List[Dict[str, Any]], criteria: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    """Records where every ``field: value`` pair matches as a case-insensitive substring.

    Empty criteria values are ignored; an empty criteria mapping matches all.
    """
    terms = {
        name: str(value).lower() for name, value in criteria.items() if not is_blank(value)
    }
    return [
        record
        for record in records
        if all(_contains(record.get(name), needle) for name, needle in terms.items())
    ]


def filter_records(
    records: List[Dict[str, Any]],
    term: str = "",
    field: str = ALL_FIELDS,
    *,
    class_name: Optional[str] = None,
    order: Optional[str] = None,
    family: Optional[str] = None,
    country: Optional[str] = None,
    state: Optional[str] = None,
    group: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Free-text search combined with exact-match taxonomic and geographic filters.

    Args:
        records: Snapshot to filter
        term: Case-insensitive substring; blank matches everything
        field: Column to search, or ``"all"`` to search every column
        class_name, order, family: Exact taxonomic filters
        country, state: Exact geographic filters
        group: Taxonomic group name from TAXONOMIC_GROUPS or OTHER_GROUP

    Returns:
        Matching records in their original order
    """
    needle = (term or "").strip().lower()
    exact = {
        CLASS_FIELD: class_name,
        "Order": order,
        "Family": family,
        "Country": country,
        STATE_FIELD: state,
    }
    exact = {name: value for name, value in exact.items() if value}

    results = []
    for record in records:
        if needle:
            if field == ALL_FIELDS:
                if not any(_contains(value, needle) for value in record.values()):
                    continue
            elif not _contains(record.get(field), needle):
                continue
        if any(str(record.get(name, "")).strip() != value for name, value in exact.items()):
            continue
        if group and taxonomic_group(record) != group:
            continue
        results.append(record)
    return results


def paginate(items: List[Any], page: int = 1, per_page: int = 20) -> Dict[str, Any]:
    """Slice ``items`` into one page (1-based); out-of-range pages are empty."""
    if per_page < 1:
        raise ValueError("per_page must be positive")
    page = max(page, 1)
    total = len(items)
    start = (page - 1) * per_page
    return {
        "items": items[start : start + per_page],
        "page": page,
        "per_page": per_page,
        "total": total,
        "pages": (total + per_page - 1) // per_page,
    }
