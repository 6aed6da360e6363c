"""
reports.py
==========
Report generator: applies a named report type to a dataset, then an
optional date range.

"upcoming" and "past" are evaluated against the clock when the report is
generated, so the same stored data can give different results over time.
"""

import datetime
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .filters import ALL, filter_by_date_range
from .refs import field_value
from .timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

# Window used by the "recent" and "active" report types
RECENT_DAYS = 30


class UnknownReportType(ValueError):
    """The report type is not defined for this kind of data."""


Predicate = Callable[[Any, datetime.datetime], bool]


def _after_now(field: str) -> Predicate:
    def check(item, now):
        when = parse_timestamp(field_value(item, field))
        return when is not None and when > now
    return check


def _before_now(field: str) -> Predicate:
    def check(item, now):
        when = parse_timestamp(field_value(item, field))
        return when is not None and when < now
    return check


def _within_days(field: str, days: int) -> Predicate:
    def check(item, now):
        when = parse_timestamp(field_value(item, field))
        return when is not None and now - datetime.timedelta(days=days) <= when <= now
    return check


def _not(pred: Predicate) -> Predicate:
    def check(item, now):
        return not pred(item, now)
    return check


def _equals(field: str, value: Any) -> Predicate:
    def check(item, now):
        return field_value(item, field) == value
    return check


# kind -> report type -> predicate ("all" has no predicate)
REPORT_TYPES: Dict[str, Dict[str, Optional[Predicate]]] = {
    "appointments": {
        ALL: None,
        "upcoming": _after_now("datetime"),
        "past": _before_now("datetime"),
        "cancelled": _equals("status", "cancelled"),
    },
    "reminders": {
        ALL: None,
        "upcoming": _after_now("date_time"),
        "past": _before_now("date_time"),
        "sent": _equals("status", "sent"),
    },
    "records": {
        ALL: None,
        "recent": _within_days("created_at", RECENT_DAYS),
    },
    "patients": {
        ALL: None,
        "active": _within_days("lastAppointment", RECENT_DAYS),
        "inactive": _not(_within_days("lastAppointment", RECENT_DAYS)),
    },
    "feedbacks": {ALL: None},
    "doctors": {ALL: None},
}


def report_types(kind: str) -> List[str]:
    """Report types available for a kind of data."""
    if kind not in REPORT_TYPES:
        raise UnknownReportType(f"no reports defined for {kind!r}")
    return list(REPORT_TYPES[kind])


def apply_report(
    kind: str,
    data: Sequence[Any],
    report_type: str = ALL,
    start: Optional[datetime.datetime] = None,
    end: Optional[datetime.datetime] = None,
    now: Optional[datetime.datetime] = None,
) -> List[Any]:
    """
    Items of ``data`` matching ``report_type`` and, when given, the
    inclusive ``[start, end]`` date range.
    """
    types = REPORT_TYPES.get(kind)
    if types is None:
        raise UnknownReportType(f"no reports defined for {kind!r}")
    report_type = report_type or ALL
    if report_type not in types:
        raise UnknownReportType(f"unknown report type {report_type!r} for {kind}")

    now = parse_timestamp(now) if now is not None else utcnow()
    predicate = types[report_type]
    results = list(data) if predicate is None else [i for i in data if predicate(i, now)]

    if start is not None or end is not None:
        results = filter_by_date_range(results, start, end)
    return results


class ReportGenerator:
    """
    Stateful report over one dataset: remembers the selected report type
    and date range and the last results, and can be reset.

    ``clock`` returns the current time; it is read on every ``generate``.
    """

    def __init__(self, kind: str, data: Sequence[Any], clock: Callable[[], datetime.datetime] = utcnow):
        if kind not in REPORT_TYPES:
            raise UnknownReportType(f"no reports defined for {kind!r}")
        self.kind = kind
        self.data = list(data)
        self.clock = clock
        self.report_type = ALL
        self.start = None
        self.end = None
        self.results = list(self.data)
        self.generated_at = None

    @property
    def options(self) -> List[str]:
        return report_types(self.kind)

    def generate(self, report_type: str = ALL, start=None, end=None) -> List[Any]:
        now = self.clock()
        self.results = apply_report(self.kind, self.data, report_type, start, end, now=now)
        self.report_type = report_type or ALL
        self.start, self.end = start, end
        self.generated_at = now
        logger.debug("Report %s/%s -> %d of %d items", self.kind, self.report_type,
                     len(self.results), len(self.data))
        return self.results

    def reset(self) -> List[Any]:
        """Back to the unfiltered data with no report type or range."""
        self.report_type = ALL
        self.start = None
        self.end = None
        self.results = list(self.data)
        self.generated_at = None
        return self.results

    def __len__(self):
        return len(self.results)
