from .aggregators import (
    ChartSlice,
    chart_data,
    collapse_tail,
    collection_timeline,
    completeness_summary,
    count_by,
    geographic_distribution,
    group_counts,
    missing_geography,
    parse_year,
    taxonomic_distribution,
    taxonomic_group,
    to_slices,
)

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
