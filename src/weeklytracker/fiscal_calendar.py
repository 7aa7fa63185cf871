"""April-start fiscal week calendar.

Week 1 starts on April 1st and the year runs to week 52 in March. Month and
quarter boundaries are expressed in fiscal weeks using a fixed 4-5 week
approximation; they are lookup tables, not a date calendar.

Weeks beyond the last table entry (e.g. a 53rd week) fall into the last month
and the last quarter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


PERIODS = ("week", "month", "quarter", "ytd")


@dataclass(frozen=True)
class FiscalMonth:
    month: str
    start_week: int
    end_week: int


@dataclass(frozen=True)
class FiscalQuarter:
    quarter: int
    start_week: int
    end_week: int
    months: str


@dataclass(frozen=True)
class WeekRange:
    start_week: int
    end_week: int
    label: str

    def contains(self, week_number: int) -> bool:
        return self.start_week <= week_number <= self.end_week


FY_MONTH_WEEKS: List[FiscalMonth] = [
    FiscalMonth("April", 1, 4),
    FiscalMonth("May", 5, 9),
    FiscalMonth("June", 10, 13),
    FiscalMonth("July", 14, 17),
    FiscalMonth("August", 18, 22),
    FiscalMonth("September", 23, 26),
    FiscalMonth("October", 27, 30),
    FiscalMonth("November", 31, 35),
    FiscalMonth("December", 36, 39),
    FiscalMonth("January", 40, 44),
    FiscalMonth("February", 45, 48),
    FiscalMonth("March", 49, 52),
]

FY_QUARTERS: List[FiscalQuarter] = [
    FiscalQuarter(1, 1, 13, "Apr-Jun"),
    FiscalQuarter(2, 14, 26, "Jul-Sep"),
    FiscalQuarter(3, 27, 39, "Oct-Dec"),
    FiscalQuarter(4, 40, 52, "Jan-Mar"),
]


def fiscal_month_for_week(week_number: int) -> FiscalMonth:
    for m in FY_MONTH_WEEKS:
        if m.start_week <= week_number <= m.end_week:
            return m
    return FY_MONTH_WEEKS[-1]


def fiscal_quarter_for_week(week_number: int) -> FiscalQuarter:
    for q in FY_QUARTERS:
        if q.start_week <= week_number <= q.end_week:
            return q
    return FY_QUARTERS[-1]


def week_range_for_period(latest_week: int, period: str, fiscal_year_label: Optional[str] = None) -> WeekRange:
    """Return the fiscal window ending at ``latest_week`` for ``period``.

    - week: only the latest week
    - month / quarter: the table entry holding the latest week, clipped at it
    - ytd: week 1 through the latest week
    """
    key = str(period).strip().lower()
    if key not in PERIODS:
        raise ValueError(f"Unknown period '{period}'; expected one of {', '.join(PERIODS)}")

    if key == "week":
        return WeekRange(latest_week, latest_week, f"W{latest_week}")
    if key == "month":
        m = fiscal_month_for_week(latest_week)
        return WeekRange(m.start_week, min(m.end_week, latest_week), m.month)
    if key == "quarter":
        q = fiscal_quarter_for_week(latest_week)
        return WeekRange(q.start_week, min(q.end_week, latest_week), f"Q{q.quarter} ({q.months})")

    prefix = f"YTD {fiscal_year_label}" if fiscal_year_label else "YTD"
    return WeekRange(1, latest_week, f"{prefix} (W1-W{latest_week})")
