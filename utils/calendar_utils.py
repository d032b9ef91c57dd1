import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from utils.errors import InvalidReportParameter
from utils.report_types import DateRange

Month = Tuple[int, int]  # (year, month)

_MONTH_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


def class_months(start_day: date, end_day: date) -> List[Month]:
    """Every (year, month) touched by [start_day, end_day], in order.

    The month containing end_day is always included. An inverted window
    yields no months.
    """
    months: List[Month] = []
    year, month = start_day.year, start_day.month
    while (year, month) <= (end_day.year, end_day.month):
        months.append((year, month))
        year, month = next_month(year, month)
    return months


def next_month(year: int, month: int) -> Month:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def first_day(month: Month) -> date:
    return date(month[0], month[1], 1)


def month_range(year: int, month: int) -> DateRange:
    """Inclusive datetime window covering the whole calendar month."""
    last = calendar.monthrange(year, month)[1]
    return DateRange(
        start=datetime(year, month, 1),
        end=datetime.combine(date(year, month, last), time.max),
    )


def window_range(start_day: date, end_day: date) -> DateRange:
    return DateRange(
        start=datetime.combine(start_day, time.min),
        end=datetime.combine(end_day, time.max),
    )


def iter_days(start_day: date, end_day: date):
    day = start_day
    while day <= end_day:
        yield day
        day += timedelta(days=1)


def month_of(value) -> Month:
    return value.year, value.month


def parse_month(value: Optional[str]) -> Optional[Month]:
    """Parse a ``YYYY-MM`` query value; empty values mean "no month"."""
    if value is None or not str(value).strip():
        return None
    match = _MONTH_PATTERN.match(str(value))
    if not match:
        raise InvalidReportParameter(f"Invalid month '{value}', expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidReportParameter(f"Invalid month '{value}', expected YYYY-MM")
    return year, month
