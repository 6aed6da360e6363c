"""
filters.py
==========
Pure functions behind the list views: text search, value filters,
date-range filters and sorting. None of them mutate their input.
"""

import datetime
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .refs import LookupLike, as_lookup, display_name, field_value
from .timeutils import parse_timestamp

# Sentinel for "no filter selected"
ALL = "all"

# Date field lookup order used by the date-range filter
DATE_FIELDS = ("datetime", "date", "createdAt", "date_time", "created_at")


def _ref(field):
    def get(item, lookup):
        return display_name(item, field, lookup)
    return get


def _attr(field):
    def get(item, lookup):
        return field_value(item, field)
    return get


# Searchable display fields per dataset kind
SEARCH_FIELDS = {
    "appointments": (_ref("patient"), _ref("doctor")),
    "records": (_ref("patient"), _attr("diagnosis"), _attr("treatment")),
    "reminders": (_ref("patient"), _attr("message")),
    "feedbacks": (_ref("patient"), _ref("doctor"), _attr("comment")),
    "patients": (_attr("username"), _attr("email")),
    "doctors": (_attr("username"), _attr("email"), _attr("specialty")),
}


def matches_search(item: Any, query: str, getters: Sequence[Callable], lookup=None) -> bool:
    """Case-insensitive substring match against any of the display fields."""
    if not query:
        return True
    needle = query.lower()
    for get in getters:
        value = get(item, lookup)
        if value is not None and needle in str(value).lower():
            return True
    return False


def search(items: Iterable[Any], query: Optional[str], kind: str, lookup: LookupLike = None) -> List[Any]:
    """
    Filter ``items`` of the given kind by a free-text query.
    An empty query returns every item, in order.
    """
    if kind not in SEARCH_FIELDS:
        raise ValueError(f"unknown dataset kind: {kind}")
    getters = SEARCH_FIELDS[kind]
    lookup = as_lookup(lookup)
    return [item for item in items if matches_search(item, query or "", getters, lookup)]


def filter_by_value(items: Iterable[Any], field: str, selected: Any) -> List[Any]:
    """Exact match on ``field``; ``"all"`` or None keeps everything."""
    if selected is None or selected == ALL:
        return list(items)
    return [item for item in items if field_value(item, field) == selected]


def item_date(item: Any) -> Optional[Any]:
    """Raw value of the first date field present on the item, or None."""
    for name in DATE_FIELDS:
        value = field_value(item, name)
        if value is not None:
            return value
    return None


def _bound(value: Any, name: str) -> Optional[datetime.datetime]:
    if value is None:
        return None
    when = parse_timestamp(value)
    if when is None:
        raise ValueError(f"invalid {name} date: {value!r}")
    return when


def filter_by_date_range(
    items: Iterable[Any],
    start: Optional[datetime.datetime] = None,
    end: Optional[datetime.datetime] = None,
) -> List[Any]:
    """
    Keep items whose date lies within [start, end]. Either bound may be None.

    Items without any date field are kept. Items whose date cannot be
    parsed are dropped. A bound that cannot be parsed raises ValueError.
    """
    start = _bound(start, "start")
    end = _bound(end, "end")
    if start is None and end is None:
        return list(items)

    result = []
    for item in items:
        raw = item_date(item)
        if raw is None:
            result.append(item)
            continue
        when = parse_timestamp(raw)
        if when is None:
            continue
        if start is not None and when < start:
            continue
        if end is not None and when > end:
            continue
        result.append(item)
    return result


def sort_by_timestamp(items: Iterable[Any], field: str, reverse: bool = False) -> List[Any]:
    """
    Stable sort on a timestamp field. Unparseable or missing values go last.
    """
    dated, undated = [], []
    for item in items:
        when = parse_timestamp(field_value(item, field))
        if when is None:
            undated.append(item)
        else:
            dated.append((when, item))
    dated.sort(key=lambda pair: pair[0], reverse=reverse)
    return [item for _, item in dated] + undated


def sort_reminders(items: Iterable[Any]) -> List[Any]:
    """Reminders, soonest first."""
    return sort_by_timestamp(items, "date_time")
