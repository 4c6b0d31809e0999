"""
Summary and chart aggregators.

Pure reducers over a record snapshot. They return plain counts and
``ChartSlice`` values; rendering is left to whoever consumes them.
"""

import re
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from zoarch.core.schema import STATE_FIELD, TRACKED_FIELDS, is_blank, missing_fields
from zoarch.records.search import OTHER_GROUP, TAXONOMIC_GROUPS, taxonomic_group

UNKNOWN_LABEL = "Unknown"
OTHER_LABEL = "Other"

MIN_YEAR = 1000
MAX_YEAR = 2100

_DATE_FORMATS = [
    "%Y-%m-%d",  # "1969-07-15"
    "%Y-%m-%dT%H:%M:%S",  # "1969-07-15T00:00:00"
    "%d %B %Y",  # "15 July 1969"
    "%d %b %Y",  # "15 Jul 1969"
    "%B %d, %Y",  # "July 15, 1969"
    "%b %d, %Y",  # "Jul 15, 1969"
    "%m/%d/%Y",  # "07/15/1969"
    "%d/%m/%Y",  # "15/07/1969"
    "%Y/%m/%d",  # "1969/07/15"
    "%d-%m-%Y",  # "15-07-1969"
    "%B %Y",  # "July 1969"
    "%b %Y",  # "Jul 1969"
]
_YEAR_PATTERN = re.compile(r"(?<!\d)(\d{4})(?!\d)")

Counts = List[Tuple[str, int]]


@dataclass
class ChartSlice:
    """One labelled share of a pie or bar chart."""

    name: str
    value: int
    percentage: float

    def to_dict(self) -> dict:
        return asdict(self)


def _label(value: Any, empty_label: str) -> str:
    return empty_label if is_blank(value) else str(value).strip()


def count_by(
    records: Sequence[Mapping[str, Any]], field: str, empty_label: str = UNKNOWN_LABEL
) -> Counts:
    """Count records per value of ``field``, largest first.

    Blank values are counted under ``empty_label``. Ties keep first-seen order.
    """
    counter = Counter(_label(record.get(field), empty_label) for record in records)
    return counter.most_common()


def collapse_tail(counts: Counts, top_n: int, other_label: str = OTHER_LABEL) -> Counts:
    """Keep the ``top_n`` largest entries and sum the rest into ``other_label``."""
    if len(counts) <= top_n:
        return list(counts)
    head = list(counts[:top_n])
    rest = sum(count for _, count in counts[top_n:])
    if rest:
        head.append((other_label, rest))
    return head


def to_slices(counts: Counts) -> List[ChartSlice]:
    """Attach percentages (one decimal place) to each count."""
    total = sum(count for _, count in counts)
    if not total:
        return [ChartSlice(name, count, 0.0) for name, count in counts]
    return [ChartSlice(name, count, round(count * 100 / total, 1)) for name, count in counts]


def taxonomic_distribution(
    records: Sequence[Mapping[str, Any]], field: str = "Order", top_n: int = 10
) -> List[ChartSlice]:
    """Share of records per Class, Order or Family; the tail becomes "Other"."""
    return to_slices(collapse_tail(count_by(records, field), top_n))


def geographic_distribution(
    records: Sequence[Mapping[str, Any]], field: str = "Country", top_n: int = 8
) -> List[ChartSlice]:
    """
    Share of records per country (or state).

    "Unknown" never takes one of the ``top_n`` places: named values are ranked
    and collapsed first, then the unknown count is appended last.
    """
    counts = count_by(records, field)
    unknown = sum(count for name, count in counts if name == UNKNOWN_LABEL)
    named = [(name, count) for name, count in counts if name != UNKNOWN_LABEL]
    result = collapse_tail(named, top_n)
    if unknown:
        result.append((UNKNOWN_LABEL, unknown))
    return to_slices(result)


def missing_geography(records: Sequence[Mapping[str, Any]]) -> int:
    """Records with neither a country nor a state/province."""
    return sum(
        1
        for record in records
        if is_blank(record.get("Country")) and is_blank(record.get(STATE_FIELD))
    )


def parse_year(value: Any) -> Optional[int]:
    """Best-effort year of a collection date; None when it cannot be told."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        year = int(value)
        return year if MIN_YEAR <= year <= MAX_YEAR else None
    if isinstance(value, datetime):
        return value.year

    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).year
        except ValueError:
            continue

    match = _YEAR_PATTERN.search(text)
    if match:
        year = int(match.group(1))
        if MIN_YEAR <= year <= MAX_YEAR:
            return year
    return None


def collection_timeline(records: Sequence[Mapping[str, Any]]) -> Dict[int, int]:
    """Records per collection year, in year order; unparseable dates are skipped."""
    years = Counter()
    for record in records:
        year = parse_year(record.get("Date collected"))
        if year is not None:
            years[year] += 1
    return dict(sorted(years.items()))


def completeness_summary(records: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Complete/incomplete counts and how often each tracked field is missing."""
    missing = {name: 0 for name in TRACKED_FIELDS}
    complete = 0
    for record in records:
        gaps = missing_fields(record)
        if not gaps:
            complete += 1
        for name in gaps:
            missing[name] += 1
    total = len(records)
    return {
        "total": total,
        "complete": complete,
        "incomplete": total - complete,
        "percent_complete": round(complete * 100 / total, 1) if total else 0.0,
        "missing_by_field": missing,
    }


def group_counts(records: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    """Records per taxonomic group; records without an Order are not counted."""
    counts = {name: 0 for name in TAXONOMIC_GROUPS}
    counts[OTHER_GROUP] = 0
    for record in records:
        group = taxonomic_group(record)
        if group is not None:
            counts[group] += 1
    return counts


def chart_data(records: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    """Everything the dashboard charts need in one bundle."""
    return {
        "orders": [s.to_dict() for s in taxonomic_distribution(records, "Order", top_n=10)],
        "families": [s.to_dict() for s in taxonomic_distribution(records, "Family", top_n=10)],
        "classes": [s.to_dict() for s in taxonomic_distribution(records, "Class", top_n=10)],
        "countries": [s.to_dict() for s in geographic_distribution(records, "Country")],
        "states": [s.to_dict() for s in geographic_distribution(records, STATE_FIELD)],
        "missing_geography": missing_geography(records),
        "timeline": collection_timeline(records),
        "groups": group_counts(records),
        "completeness": completeness_summary(records),
    }


__all__ = [
    "ChartSlice",
    "chart_data",
    "collapse_tail",
    "collection_timeline",
    "completeness_summary",
    "count_by",
    "geographic_distribution",
    "group_counts",
    "missing_geography",
    "parse_year",
    "taxonomic_distribution",
    "taxonomic_group",
    "to_slices",
]
