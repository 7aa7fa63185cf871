from pathlib import Path

import pytest
from openpyxl import Workbook

from weeklytracker.extractors import OTD_SHEET, TRACKER_SHEET
from weeklytracker.fiscal_calendar import PERIODS
from weeklytracker.period_aggregator import summarize_period
from weeklytracker.pipeline import process_workbook
from weeklytracker.storage import DashboardStore


def _workbook(path: Path) -> Path:
    wb = Workbook()
    tracker = wb.active
    tracker.title = TRACKER_SHEET
    tracker.append([None] * 12 + ["Week - 42", None, None, "Week - 43", None, None])
    tracker.append(["Region", "Area"])
    fixed = [None, None, None, None, None]
    tracker.append(["East", "A", None, "Freight Booking", "Cr"] + fixed + [None, 30, 10, 12, None, 11, 18, None])
    tracker.append([None, "B", None, "Freight Booking", "Cr"] + fixed + [None, 20, 5, 7, None, 5, 13, None])
    tracker.append([None, "A", None, "GM2% on Sale", "%"] + fixed + [None, 8.5, 8, 8, None, 8, 9, None])
    tracker.append(["Grand Total", "", None, "Freight Booking", "Cr"] + fixed + [None, 50, 15, 19, None, 16, 31, None])

    otd = wb.create_sheet(OTD_SHEET)
    otd.append([None, None, None, 1, 2, 3, 4, 5, 6])
    otd.append([None, None, None, "Week-1", "Week-1", "Week-2", "Week-2", "Week-3", "Week-3"])
    otd.append(["Region Name", "Area Name", "KPI", "Plan", "Actual", "Plan", "Actual", "Plan", "Actual"])
    otd.append(["East", "A", "OTD", 0.9, 0.8, 0.9, 0.85, 0.9, 0.95])
    otd.append([None, "B", "OTD", 90, 92, 90, None, None, None])
    wb.save(path)
    return path


def test_stored_dashboard_aggregates_like_the_extracted_one(tmp_path):
    metrics = process_workbook(_workbook(tmp_path / "tracker.xlsx"))
    assert metrics.freight_booking == pytest.approx(50.0)
    assert metrics.latest_week == 43
    assert metrics.ifd_data == [] and metrics.ifd_percent == 0.0

    with DashboardStore(tmp_path / "store.duckdb", batch_size=3) as db:
        db.save(metrics, "tracker.xlsx")
        reloaded = db.load_latest().metrics

    assert reloaded.to_dict() == metrics.to_dict()
    for period in PERIODS:
        assert summarize_period(reloaded, period).to_dict() == summarize_period(metrics, period).to_dict()

    ytd = summarize_period(reloaded, "ytd")
    assert ytd.otd_percent == pytest.approx(((80 + 85 + 95) / 3 + 92) / 2)
    assert ytd.freight_booking == pytest.approx(12 + 7 + 18 + 13)

    week = summarize_period(reloaded, "week", areas=["B"])
    assert week.freight_booking == pytest.approx(13.0)
    assert week.gm2_percent == 0.0
    assert week.otd_percent == 0.0


def test_frames_mirror_collections(tmp_path):
    metrics = process_workbook(_workbook(tmp_path / "tracker.xlsx"))
    frames = metrics.to_frames()
    assert len(frames["kpiData"]) == 3
    assert len(frames["weeklyOTD"]) == 4
    assert frames["weeklyIFD"].empty
    assert list(frames["weeklyKPI"].columns) == ["region", "area", "kpi", "weekNumber", "planned", "actual"]
