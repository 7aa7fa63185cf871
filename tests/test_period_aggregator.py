import pytest

from weeklytracker.models import DashboardMetrics, WeeklyDeliveryPoint, WeeklyKPIPoint
from weeklytracker.period_aggregator import (
    Selection,
    area_weighted_mean,
    calculate_filtered_kpi_metrics,
    calculate_filtered_metrics,
    filter_by_period,
    summarize_period,
)


def otd(region, area, week, actual, plan=95.0):
    return WeeklyDeliveryPoint(region, area, "OTD", week, plan, actual)


def kpi(region, area, name, week, actual, planned=None):
    return WeeklyKPIPoint(region, area, name, week, planned, actual)


WEEKLY_OTD = [
    otd("East", "A", 39, 80.0),
    otd("East", "A", 40, 90.0),
    otd("East", "A", 43, 100.0),
    otd("West", "B", 43, 94.0),
]

WEEKLY_KPI = [
    kpi("East", "A", "Freight Booking", 42, 10.0),
    kpi("East", "A", "Freight Booking", 43, 20.0),
    kpi("West", "B", "Freight Booking", 43, 5.0),
    kpi("East", "A", "GM2% on Sale", 43, 8.0),
    kpi("West", "B", "GM2% on Sale", 43, 6.0),
    kpi("West", "B", "GM2% on Sale", 40, 10.0),
    kpi("East", "A", "LHC Advance %", 43, 70.0),
]


def metrics():
    return DashboardMetrics(weekly_otd=list(WEEKLY_OTD), weekly_kpi=list(WEEKLY_KPI), latest_week=43)


class TestDeliveryAggregation:
    @pytest.mark.parametrize(
        "period,expected",
        [("week", 97.0), ("month", 94.5), ("quarter", 94.5), ("ytd", 92.0)],
    )
    def test_two_level_mean_per_period(self, period, expected):
        filtered = filter_by_period(WEEKLY_OTD, 43, period)
        out = calculate_filtered_metrics(filtered, [])
        assert out["otd_percent"] == pytest.approx(expected)
        assert out["ifd_percent"] == 0.0

    def test_mean_of_area_means_differs_from_flat_mean(self):
        filtered = filter_by_period(WEEKLY_OTD, 43, "ytd")
        flat = sum(p.actual for p in filtered) / len(filtered)
        assert flat == pytest.approx(91.0)
        assert calculate_filtered_metrics(filtered, [])["otd_percent"] == pytest.approx(92.0)

    def test_region_selection(self):
        filtered = filter_by_period(WEEKLY_OTD, 43, "ytd")
        out = calculate_filtered_metrics(filtered, [], Selection(regions=["East"]))
        assert out["otd_percent"] == pytest.approx(90.0)

    def test_area_selection(self):
        filtered = filter_by_period(WEEKLY_OTD, 43, "ytd")
        out = calculate_filtered_metrics(filtered, [], Selection(areas=["B"]))
        assert out["otd_percent"] == pytest.approx(94.0)

    def test_full_selection_equals_no_selection(self):
        filtered = filter_by_period(WEEKLY_OTD, 43, "ytd")
        none = calculate_filtered_metrics(filtered, [], Selection())
        full = calculate_filtered_metrics(
            filtered,
            [],
            Selection(regions=["East", "West"], areas=["A", "B"], all_regions=["East", "West"], all_areas=["A", "B"]),
        )
        assert none == full

    def test_null_actuals_are_ignored(self):
        points = [otd("East", "A", 1, None), otd("East", "A", 1, 80.0)]
        out = calculate_filtered_metrics(points, [])
        assert out["otd_percent"] == pytest.approx(80.0)

    def test_empty(self):
        assert calculate_filtered_metrics([], []) == {"otd_percent": 0.0, "ifd_percent": 0.0}


class TestKPIAggregation:
    def test_week(self):
        out = calculate_filtered_kpi_metrics(WEEKLY_KPI, 43, "week")
        assert out["freight_booking"] == pytest.approx(25.0)
        assert out["gm2_percent"] == pytest.approx(7.0)
        assert out["lhc_advance"] == pytest.approx(70.0)
        assert out["pbt_percent"] == 0.0

    def test_month_sums_freight_and_averages_ratios(self):
        out = calculate_filtered_kpi_metrics(WEEKLY_KPI, 43, "month")
        assert out["freight_booking"] == pytest.approx(35.0)
        assert out["gm2_percent"] == pytest.approx(8.0)

    def test_selection(self):
        out = calculate_filtered_kpi_metrics(WEEKLY_KPI, 43, "ytd", Selection(regions=["West"]))
        assert out["freight_booking"] == pytest.approx(5.0)
        assert out["gm2_percent"] == pytest.approx(8.0)
        assert out["lhc_advance"] == 0.0

    def test_no_data_or_no_latest_week(self):
        zeros = {"freight_booking": 0.0, "gm2_percent": 0.0, "pbt_percent": 0.0, "lhc_advance": 0.0}
        assert calculate_filtered_kpi_metrics([], 43, "ytd") == zeros
        assert calculate_filtered_kpi_metrics(WEEKLY_KPI, 0, "ytd") == zeros


def test_area_weighted_mean_empty_frame_is_zero():
    import pandas as pd

    assert area_weighted_mean(pd.DataFrame(columns=["area", "actual"])) == 0.0


class TestSummarizePeriod:
    def test_summary_fields(self):
        s = summarize_period(metrics(), "month")
        assert s.week_range.label == "January"
        assert (s.week_range.start_week, s.week_range.end_week) == (40, 43)
        assert s.otd_percent == pytest.approx(94.5)
        assert s.freight_booking == pytest.approx(35.0)
        d = s.to_dict()
        assert d["label"] == "January" and d["startWeek"] == 40 and d["endWeek"] == 43

    @pytest.mark.parametrize("period", ["week", "month", "quarter", "ytd"])
    def test_full_selection_matches_empty_selection(self, period):
        m = metrics()
        empty = summarize_period(m, period).to_dict()
        full = summarize_period(m, period, regions=["East", "West"], areas=["A", "B"]).to_dict()
        assert empty == full

    def test_fiscal_year_label(self):
        s = summarize_period(metrics(), "ytd", fiscal_year_label="FY26")
        assert s.week_range.label == "YTD FY26 (W1-W43)"
