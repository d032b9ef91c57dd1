from datetime import date, datetime

import pytest

from utils.calendar_utils import (
    class_months,
    iter_days,
    month_range,
    next_month,
    parse_month,
)
from utils.errors import InvalidReportParameter


def test_class_months_includes_end_month():
    assert class_months(date(2024, 1, 10), date(2024, 2, 20)) == [(2024, 1), (2024, 2)]


def test_class_months_crosses_year():
    months = class_months(date(2023, 11, 30), date(2024, 1, 1))
    assert months == [(2023, 11), (2023, 12), (2024, 1)]


def test_class_months_inverted_window_is_empty():
    assert class_months(date(2024, 3, 1), date(2024, 1, 1)) == []


def test_next_month_wraps_december():
    assert next_month(2024, 12) == (2025, 1)


def test_month_range_is_inclusive():
    window = month_range(2024, 2)
    assert date(2024, 2, 1) in window
    assert datetime(2024, 2, 29, 23, 59, 59) in window
    assert date(2024, 3, 1) not in window


def test_iter_days():
    assert len(list(iter_days(date(2024, 1, 30), date(2024, 2, 2)))) == 4


def test_parse_month():
    assert parse_month("2024-03") == (2024, 3)
    assert parse_month("") is None
    assert parse_month(None) is None


@pytest.mark.parametrize("value", ["2024-13", "2024/01", "march"])
def test_parse_month_rejects_bad_values(value):
    with pytest.raises(InvalidReportParameter):
        parse_month(value)
