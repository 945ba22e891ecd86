"""
Utility functions for mitrack.
"""

from mitrack_mcp.utils.date_utils import (
    date_range_to_timestamps,
    format_timestamp,
    get_month_range,
    parse_period,
)

__all__ = [
    "parse_period",
    "get_month_range",
    "date_range_to_timestamps",
    "format_timestamp",
]
