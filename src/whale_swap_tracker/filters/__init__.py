"""Filters module - User filter profiles and their validated edits."""

from whale_swap_tracker.filters.editor import FilterEditor
from whale_swap_tracker.filters.models import (
    MAX_LIST_ENTRIES,
    FilterMode,
    FilterProfile,
    FilterRow,
    FilterType,
)
from whale_swap_tracker.filters.profile import (
    FilterError,
    FilterLimitError,
    InvalidFilterValueError,
    process_filters,
    validate_filter_value,
)

__all__ = [
    "MAX_LIST_ENTRIES",
    "FilterEditor",
    "FilterError",
    "FilterLimitError",
    "FilterMode",
    "FilterProfile",
    "FilterRow",
    "FilterType",
    "InvalidFilterValueError",
    "process_filters",
    "validate_filter_value",
]
