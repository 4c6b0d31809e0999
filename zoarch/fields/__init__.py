from .standardize import FIELD_ALIASES, standardize_row, standardize_rows

__all__ = [
    "FIELD_ALIASES",
    "standardize_row",
    "standardize_rows",
]
