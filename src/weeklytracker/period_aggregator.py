"""Re-aggregation of weekly points over fiscal periods and region/area selections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .extractors import ESTIMATED_PBT, FREIGHT_BOOKING, GM2_ON_SALE, LHC_ADVANCE
from .fiscal_calendar import WeekRange, week_range_for_period
from .models import DashboardMetrics, WeeklyDeliveryPoint, WeeklyKPIPoint


LOGGER = logging.getLogger("weeklytracker.period")


@dataclass(frozen=True)
class Selection:
    """Region/area filter. Selecting nothing and selecting everything both mean no filter."""

    regions: Sequence[str] = ()
    areas: Sequence[str] = ()
    all_regions: Optional[Sequence[str]] = None
    all_areas: Optional[Sequence[str]] = None


@dataclass
class PeriodSummary:
    period: str
    week_range: WeekRange
    freight_booking: float = 0.0
    gm2_percent: float = 0.0
    pbt_percent: float = 0.0
    lhc_advance: float = 0.0
    otd_percent: float = 0.0
    ifd_percent: float = 0.0
    point_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "period": self.period,
            "startWeek": self.week_range.start_week,
            "endWeek": self.week_range.end_week,
            "label": self.week_range.label,
            "freightBooking": self.freight_booking,
            "gm2Percent": self.gm2_percent,
            "pbtPercent": self.pbt_percent,
            "lhcAdvance": self.lhc_advance,
            "otdPercent": self.otd_percent,
            "ifdPercent": self.ifd_percent,
        }


_POINT_COLUMNS = ["region", "area", "kpi", "weekNumber", "actual"]


def _frame(points: Iterable[object]) -> pd.DataFrame:
    rows = [p.to_dict() for p in points]
    if not rows:
        return pd.DataFrame(columns=_POINT_COLUMNS)
    return pd.DataFrame(rows)


def _filter_active(selected: Sequence[str], available: Iterable[str]) -> bool:
    chosen = set(selected or ())
    if not chosen:
        return False
    universe = set(available)
    return not (universe and chosen >= universe)


def apply_selection(df: pd.DataFrame, selection: Optional[Selection]) -> pd.DataFrame:
    if df.empty or selection is None:
        return df
    regions = selection.all_regions if selection.all_regions is not None else df["region"].unique()
    areas = selection.all_areas if selection.all_areas is not None else df["area"].unique()
    mask = pd.Series(True, index=df.index)
    if _filter_active(selection.regions, regions):
        mask &= df["region"].isin(list(selection.regions))
    if _filter_active(selection.areas, areas):
        mask &= df["area"].isin(list(selection.areas))
    return df.loc[mask]


def filter_by_period(points: Sequence[WeeklyDeliveryPoint], latest_week: int, period: str) -> List[WeeklyDeliveryPoint]:
    rng = week_range_for_period(latest_week, period)
    return [p for p in points if rng.contains(p.week_number)]


def area_weighted_mean(df: pd.DataFrame) -> float:
    """Mean of per-area means, so areas with more weeks do not dominate."""
    if df.empty:
        return 0.0
    valid = df.dropna(subset=["actual"])
    if valid.empty:
        return 0.0
    per_area = valid.groupby("area", sort=False)["actual"].mean()
    return float(per_area.mean())


def calculate_filtered_metrics(
    filtered_otd: Sequence[WeeklyDeliveryPoint],
    filtered_ifd: Sequence[WeeklyDeliveryPoint],
    selection: Optional[Selection] = None,
) -> Dict[str, float]:
    otd = apply_selection(_frame(filtered_otd), selection)
    ifd = apply_selection(_frame(filtered_ifd), selection)
    return {"otd_percent": area_weighted_mean(otd), "ifd_percent": area_weighted_mean(ifd)}


def calculate_filtered_kpi_metrics(
    weekly_kpi: Sequence[WeeklyKPIPoint],
    latest_week: int,
    period: str,
    selection: Optional[Selection] = None,
) -> Dict[str, float]:
    """Freight Booking is summed; GM2%, PBT% and LHC are averaged over non-null actuals."""
    out = {"freight_booking": 0.0, "gm2_percent": 0.0, "pbt_percent": 0.0, "lhc_advance": 0.0}
    if not weekly_kpi or latest_week == 0:
        return out

    rng = week_range_for_period(latest_week, period)
    df = _frame(weekly_kpi)
    df = df.loc[df["weekNumber"].between(rng.start_week, rng.end_week)]
    df = apply_selection(df, selection)
    df = df.dropna(subset=["actual"])
    if df.empty:
        return out

    by_kpi = df.groupby("kpi")["actual"]
    sums = by_kpi.sum()
    means = by_kpi.mean()
    out["freight_booking"] = float(sums.get(FREIGHT_BOOKING, 0.0))
    out["gm2_percent"] = float(means.get(GM2_ON_SALE, 0.0))
    out["pbt_percent"] = float(means.get(ESTIMATED_PBT, 0.0))
    out["lhc_advance"] = float(means.get(LHC_ADVANCE, 0.0))
    return out


def _universe(metrics: DashboardMetrics, attr: str) -> List[str]:
    values: List[str] = []
    seen = set()
    for coll in (metrics.weekly_kpi, metrics.weekly_otd, metrics.weekly_ifd):
        for p in coll:
            v = getattr(p, attr)
            if v not in seen:
                seen.add(v)
                values.append(v)
    return values


def summarize_period(
    metrics: DashboardMetrics,
    period: str,
    regions: Sequence[str] = (),
    areas: Sequence[str] = (),
    fiscal_year_label: Optional[str] = None,
) -> PeriodSummary:
    """Aggregate every headline metric of ``metrics`` over one fiscal period."""
    rng = week_range_for_period(metrics.latest_week, period, fiscal_year_label)
    selection = Selection(
        regions=tuple(regions),
        areas=tuple(areas),
        all_regions=_universe(metrics, "region"),
        all_areas=_universe(metrics, "area"),
    )

    otd = filter_by_period(metrics.weekly_otd, metrics.latest_week, period)
    ifd = filter_by_period(metrics.weekly_ifd, metrics.latest_week, period)
    delivery = calculate_filtered_metrics(otd, ifd, selection)
    kpis = calculate_filtered_kpi_metrics(metrics.weekly_kpi, metrics.latest_week, period, selection)

    summary = PeriodSummary(period=period, week_range=rng, point_counts={"otd": len(otd), "ifd": len(ifd)})
    summary.otd_percent = delivery["otd_percent"]
    summary.ifd_percent = delivery["ifd_percent"]
    summary.freight_booking = kpis["freight_booking"]
    summary.gm2_percent = kpis["gm2_percent"]
    summary.pbt_percent = kpis["pbt_percent"]
    summary.lhc_advance = kpis["lhc_advance"]
    LOGGER.debug("Period %s (%s): W%d-W%d", period, rng.label, rng.start_week, rng.end_week)
    return summary
