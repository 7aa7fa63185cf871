"""Per-sheet extractors for the Weekly Business Tracker workbook.

Each extractor walks one sheet top to bottom once, carrying the region label
forward and keeping its running totals in local accumulators. Nothing is
shared between calls; ``extract_dashboard`` builds a fresh ``DashboardMetrics``
every time.

Sheet layouts:

- Weekly Business Tracker: row 0 carries the week block markers, data starts
  at row 2. Columns: 0 region, 1 area, 3 KPI, 4 unit, 9 FY budget, 11 FY
  actual.
- Database On Time / In Full Delivery KPI: row 0 numbering, row 1 week labels,
  row 2 column headers, data from row 3. Columns: 0 region, 1 area, 2 KPI,
  then plan/actual pairs from column 3.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .concerns import IFD_THRESHOLDS, OTD_THRESHOLDS, DeliveryThresholds, delivery_concern, sort_concerns
from .metric_normalizer import (
    cell_number,
    cell_text,
    normalize_optional_percentage,
    normalize_percentage,
    safe_mean,
    variance_percent,
)
from .models import (
    KPI_TYPE_IFD,
    KPI_TYPE_OTD,
    ConcernItem,
    DashboardMetrics,
    DeliveryRecord,
    KPIRecord,
    WeeklyDeliveryPoint,
    WeeklyKPIPoint,
)
from .row_classifier import ROW_DATA, RegionCursor, RowRules, classify_row, row_value
from .week_columns import WeekColumn, extract_week_columns


LOGGER = logging.getLogger("weeklytracker.extract")

Grid = Sequence[Sequence[Any]]

TRACKER_SHEET = "Weekly Business Tracker"
OTD_SHEET = "Database On Time Delivery KPI"
IFD_SHEET = "Database In Full Delivery KPI"

FREIGHT_BOOKING = "Freight Booking"
GM2_ON_SALE = "GM2% on Sale"
ESTIMATED_PBT = "EstimatedPBT%"
LHC_ADVANCE = "LHC Advance %"
TRACKABLE_KPIS = (FREIGHT_BOOKING, GM2_ON_SALE, ESTIMATED_PBT, LHC_ADVANCE)

TRACKER_HEADER_ROW = 0
TRACKER_FIRST_DATA_ROW = 2
TRACKER_COLS = {"region": 0, "area": 1, "kpi": 3, "uom": 4, "budget": 9, "actual": 11}
TRACKER_RULES = RowRules(region_col=0, area_col=1, label_col=3, header_labels=frozenset({"KPI"}))

DELIVERY_HEADER_ROW = 1
DELIVERY_FIRST_DATA_ROW = 3
DELIVERY_FIRST_PAIR_COL = 3
DELIVERY_RULES = RowRules(
    region_col=0,
    area_col=1,
    label_col=1,
    header_labels=frozenset({"Area Name", "Region Name"}),
    region_header_labels=frozenset({"Region Name"}),
)


@dataclass(frozen=True)
class DeliverySheetSpec:
    sheet_name: str
    kpi_type: str
    concern_label: str
    thresholds: DeliveryThresholds


OTD_SPEC = DeliverySheetSpec(OTD_SHEET, KPI_TYPE_OTD, "On-Time Delivery", OTD_THRESHOLDS)
IFD_SPEC = DeliverySheetSpec(IFD_SHEET, KPI_TYPE_IFD, "In-Full Delivery", IFD_THRESHOLDS)


@dataclass
class TrackerExtract:
    kpi_data: List[KPIRecord] = field(default_factory=list)
    weekly_kpi: List[WeeklyKPIPoint] = field(default_factory=list)
    week_columns: List[WeekColumn] = field(default_factory=list)
    freight_booking: float = 0.0
    gm2_percent: float = 0.0
    pbt_percent: float = 0.0
    lhc_advance: float = 0.0
    max_week: int = 0


@dataclass
class DeliveryExtract:
    kpi_type: str
    records: List[DeliveryRecord] = field(default_factory=list)
    weekly: List[WeeklyDeliveryPoint] = field(default_factory=list)
    concerns: List[ConcernItem] = field(default_factory=list)
    header_weeks: List[WeekColumn] = field(default_factory=list)
    mean_actual: float = 0.0
    max_week: int = 0


def extract_tracker(grid: Grid) -> TrackerExtract:
    """Extract KPI rows, weekly trackable KPI points and headline sums."""

    result = TrackerExtract()
    if not grid:
        return result

    header = grid[TRACKER_HEADER_ROW] if len(grid) > TRACKER_HEADER_ROW else []
    result.week_columns = extract_week_columns(header or [], "block")
    LOGGER.debug("Tracker: %d week blocks detected", len(result.week_columns))

    cursor = RegionCursor()
    freight_sum = 0.0
    ratio_actuals: Dict[str, List[float]] = {GM2_ON_SALE: [], ESTIMATED_PBT: [], LHC_ADVANCE: []}
    skipped = 0

    for i in range(TRACKER_FIRST_DATA_ROW, len(grid)):
        row = grid[i]
        if not row:
            continue
        region = cursor.advance(row, TRACKER_RULES.region_col)
        kind = classify_row(row, region, TRACKER_RULES)
        if kind != ROW_DATA:
            skipped += 1
            continue

        area = cell_text(row_value(row, TRACKER_COLS["area"]))
        kpi = cell_text(row_value(row, TRACKER_COLS["kpi"]))
        uom = cell_text(row_value(row, TRACKER_COLS["uom"]))
        budget = cell_number(row_value(row, TRACKER_COLS["budget"]))
        actual = cell_number(row_value(row, TRACKER_COLS["actual"]))

        result.kpi_data.append(
            KPIRecord(
                region=region,
                area=area,
                kpi=kpi,
                uom=uom,
                fy25_budget=budget,
                fy25_actual=actual,
                variance=variance_percent(actual, budget),
            )
        )

        if actual is not None:
            if kpi == FREIGHT_BOOKING:
                freight_sum += actual
            elif kpi in ratio_actuals:
                ratio_actuals[kpi].append(actual)

        if kpi not in TRACKABLE_KPIS:
            continue
        for wc in result.week_columns:
            week_actual = cell_number(row_value(row, wc.actual_col))
            if week_actual is None:
                continue
            result.weekly_kpi.append(
                WeeklyKPIPoint(
                    region=region,
                    area=area,
                    kpi=kpi,
                    week_number=wc.week_number,
                    planned=cell_number(row_value(row, wc.plan_col)),
                    actual=week_actual,
                )
            )
            result.max_week = max(result.max_week, wc.week_number)

    result.freight_booking = freight_sum
    result.gm2_percent = safe_mean(ratio_actuals[GM2_ON_SALE])
    result.pbt_percent = safe_mean(ratio_actuals[ESTIMATED_PBT])
    result.lhc_advance = safe_mean(ratio_actuals[LHC_ADVANCE])
    LOGGER.info(
        "Tracker: %d KPI rows, %d weekly points, %d rows skipped, latest week %d",
        len(result.kpi_data),
        len(result.weekly_kpi),
        skipped,
        result.max_week,
    )
    return result


def _header_week_mismatches(header_weeks: Sequence[WeekColumn]) -> int:
    """Count labelled pairs whose header week differs from their ordinal position."""
    mismatches = 0
    for wc in header_weeks:
        if wc.plan_col < DELIVERY_FIRST_PAIR_COL:
            continue
        ordinal = (wc.plan_col - DELIVERY_FIRST_PAIR_COL) // 2 + 1
        if ordinal != wc.week_number:
            mismatches += 1
    return mismatches


def extract_delivery(grid: Grid, spec: DeliverySheetSpec) -> DeliveryExtract:
    """Extract weekly OTD/IFD points, latest-week area snapshots and concerns.

    Week numbers are the ordinal position of each plan/actual pair counted
    from the first pair column; header labels are only checked for drift.
    """

    result = DeliveryExtract(kpi_type=spec.kpi_type)
    if not grid:
        return result

    header = grid[DELIVERY_HEADER_ROW] if len(grid) > DELIVERY_HEADER_ROW else []
    result.header_weeks = extract_week_columns(header or [], "paired")
    mismatches = _header_week_mismatches(result.header_weeks)
    if mismatches:
        LOGGER.warning(
            "%s: %d week labels do not match their column position; using column position",
            spec.sheet_name,
            mismatches,
        )

    target = spec.thresholds.target
    cursor = RegionCursor(DELIVERY_RULES.region_header_labels)
    latest_actuals: List[float] = []

    for i in range(DELIVERY_FIRST_DATA_ROW, len(grid)):
        row = grid[i]
        if not row:
            continue
        region = cursor.advance(row, DELIVERY_RULES.region_col)
        if classify_row(row, region, DELIVERY_RULES) != ROW_DATA:
            continue
        area = cell_text(row_value(row, DELIVERY_RULES.area_col))

        latest_actual: Optional[float] = None
        latest_plan: Optional[float] = None
        week_number = 0
        for j in range(DELIVERY_FIRST_PAIR_COL, len(row) - 1, 2):
            week_number += 1
            actual_raw = cell_number(row[j + 1])
            if actual_raw is None:
                continue
            plan_pct = normalize_optional_percentage(cell_number(row[j]))
            actual_pct = normalize_percentage(actual_raw)
            result.weekly.append(
                WeeklyDeliveryPoint(
                    region=region,
                    area=area,
                    kpi_type=spec.kpi_type,
                    week_number=week_number,
                    plan=plan_pct,
                    actual=actual_pct,
                )
            )
            latest_actual = actual_pct
            latest_plan = plan_pct
            result.max_week = max(result.max_week, week_number)

        if latest_actual is None:
            continue

        plan = latest_plan if latest_plan is not None else target
        latest_actuals.append(latest_actual)
        result.records.append(
            DeliveryRecord(
                region=region,
                area=area,
                kpi_type=spec.kpi_type,
                plan=plan,
                actual=latest_actual,
                variance=latest_actual - plan,
            )
        )
        concern = delivery_concern(region, area, spec.concern_label, latest_actual, spec.thresholds)
        if concern is not None:
            result.concerns.append(concern)

    result.mean_actual = safe_mean(latest_actuals)
    LOGGER.info(
        "%s: %d areas, %d weekly points, %d concerns, latest week %d",
        spec.sheet_name,
        len(result.records),
        len(result.weekly),
        len(result.concerns),
        result.max_week,
    )
    return result


def extract_dashboard(sheets: Mapping[str, Grid]) -> DashboardMetrics:
    """Run every extractor over the sheets present and assemble the metrics.

    Missing sheets leave their metrics at the zero/empty defaults.
    """

    metrics = DashboardMetrics()
    concerns: List[ConcernItem] = []

    if TRACKER_SHEET in sheets:
        tracker = extract_tracker(sheets[TRACKER_SHEET])
        metrics.kpi_data = tracker.kpi_data
        metrics.weekly_kpi = tracker.weekly_kpi
        metrics.freight_booking = tracker.freight_booking
        metrics.gm2_percent = tracker.gm2_percent
        metrics.pbt_percent = tracker.pbt_percent
        metrics.lhc_advance = tracker.lhc_advance
        metrics.latest_week = max(metrics.latest_week, tracker.max_week)
    else:
        LOGGER.info("Sheet '%s' not found; skipping", TRACKER_SHEET)

    if OTD_SHEET in sheets:
        otd = extract_delivery(sheets[OTD_SHEET], OTD_SPEC)
        metrics.otd_data = otd.records
        metrics.weekly_otd = otd.weekly
        metrics.otd_percent = otd.mean_actual
        concerns.extend(otd.concerns)
        metrics.latest_week = max(metrics.latest_week, otd.max_week)
    else:
        LOGGER.info("Sheet '%s' not found; skipping", OTD_SHEET)

    if IFD_SHEET in sheets:
        ifd = extract_delivery(sheets[IFD_SHEET], IFD_SPEC)
        metrics.ifd_data = ifd.records
        metrics.weekly_ifd = ifd.weekly
        metrics.ifd_percent = ifd.mean_actual
        concerns.extend(ifd.concerns)
        metrics.latest_week = max(metrics.latest_week, ifd.max_week)
    else:
        LOGGER.info("Sheet '%s' not found; skipping", IFD_SHEET)

    metrics.concerns = sort_concerns(concerns)
    return metrics
