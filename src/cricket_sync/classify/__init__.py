"""Match importance classification and premium tournament selection."""

from .priority import (
    PriorityRule,
    display_priority,
    is_featured,
    match_priority,
    sort_by_priority,
)
from .tournaments import filter_premium_tournaments, group_by_series

__all__ = [
    "PriorityRule",
    "display_priority",
    "is_featured",
    "match_priority",
    "sort_by_priority",
    "filter_premium_tournaments",
    "group_by_series",
]
