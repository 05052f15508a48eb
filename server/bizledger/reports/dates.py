from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional

EARLIEST_DATE = date(2000, 1, 1)


class ReportRange(str, Enum):
    TODAY = "today"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    PAST_3_MONTHS = "past3Months"
    PAST_6_MONTHS = "past6Months"
    THIS_YEAR = "thisYear"
    LAST_YEAR = "lastYear"
    ALL = "all"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, value: Optional[date]) -> bool:
        return value is not None and self.start_date <= value <= self.end_date


def _start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min)


def _end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max)


def _month_start(value: date) -> date:
    return date(value.year, value.month, 1)


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1)


def resolve_date_range(
    range_name: Optional[str],
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """Turn a named range (or explicit custom bounds) into a concrete window.

    Windows run from midnight on their first day to the last microsecond of
    their last day. Open-ended ranges stop at the end of today; ``thisYear``
    covers the whole calendar year. An unknown name, or ``custom`` without
    both bounds, resolves as ``thisYear``.
    """
    today = (now or datetime.now()).date()
    end_of_today = _end_of_day(today)

    if range_name == ReportRange.CUSTOM.value and start and end:
        return DateRange(_start_of_day(start), _end_of_day(end))

    if range_name == ReportRange.TODAY.value:
        return DateRange(_start_of_day(today), end_of_today)
    if range_name == ReportRange.THIS_WEEK.value:
        # Weeks start on Sunday.
        days_since_sunday = (today.weekday() + 1) % 7
        return DateRange(_start_of_day(today - timedelta(days=days_since_sunday)), end_of_today)
    if range_name == ReportRange.THIS_MONTH.value:
        return DateRange(_start_of_day(_month_start(today)), end_of_today)
    if range_name == ReportRange.LAST_MONTH.value:
        this_month = _month_start(today)
        return DateRange(
            _start_of_day(_add_months(this_month, -1)),
            _end_of_day(this_month - timedelta(days=1)),
        )
    if range_name == ReportRange.PAST_3_MONTHS.value:
        return DateRange(_start_of_day(_add_months(_month_start(today), -3)), end_of_today)
    if range_name == ReportRange.PAST_6_MONTHS.value:
        return DateRange(_start_of_day(_add_months(_month_start(today), -6)), end_of_today)
    if range_name == ReportRange.LAST_YEAR.value:
        return DateRange(
            _start_of_day(date(today.year - 1, 1, 1)),
            _end_of_day(date(today.year - 1, 12, 31)),
        )
    if range_name == ReportRange.ALL.value:
        return DateRange(_start_of_day(EARLIEST_DATE), end_of_today)

    return DateRange(_start_of_day(date(today.year, 1, 1)), _end_of_day(date(today.year, 12, 31)))


def get_month_count(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return max(1, months)


def months_between(start: date, end: date) -> List[date]:
    """First day of every calendar month touched by ``[start, end]``."""
    months: List[date] = []
    current = _month_start(start)
    last = _month_start(end)
    while current <= last:
        months.append(current)
        current = _add_months(current, 1)
    return months
