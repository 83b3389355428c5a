"""
Query hooks: loading/error/data state around service calls.
"""

from .base import DebouncedSearchHook, NotificationsHook, PagedQueryHook, QueryHook, QueryStatus

__all__ = [
    "DebouncedSearchHook",
    "NotificationsHook",
    "PagedQueryHook",
    "QueryHook",
    "QueryStatus",
]
