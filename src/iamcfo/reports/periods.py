"""Report periods and the date ranges they cover."""

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum


class ReportPeriod(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEAR_TO_DATE = "Year to Date"
    TRAILING_12 = "Trailing 12"
    CUSTOM = "Custom"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range."""

    start: date
    end: date

    def __contains__(self, value: date) -> bool:
        return self.start <= value <= self.end


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def date_range(
    period: ReportPeriod,
    year: int,
    month: int,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> DateRange:
    """Date range for a period anchored at ``year``/``month``.

    A custom period without both bounds covers the whole year.
    """
    if period == ReportPeriod.CUSTOM and custom_start and custom_end:
        return DateRange(custom_start, custom_end)
    if period == ReportPeriod.MONTHLY:
        return DateRange(date(year, month, 1), _month_end(year, month))
    if period == ReportPeriod.QUARTERLY:
        first = (month - 1) // 3 * 3 + 1
        return DateRange(date(year, first, 1), _month_end(year, first + 2))
    if period == ReportPeriod.YEAR_TO_DATE:
        return DateRange(date(year, 1, 1), _month_end(year, month))
    if period == ReportPeriod.TRAILING_12:
        start_year, start_month = _shift_month(year, month, -11)
        return DateRange(date(start_year, start_month, 1), _month_end(year, month))
    return DateRange(date(year, 1, 1), date(year, 12, 31))
