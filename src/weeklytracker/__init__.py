"""
Weekly Business Tracker extraction engine.

Turns the tracker workbook (KPI tracker plus On-Time and In-Full delivery
sheets) into normalized KPI records, weekly series, concern items and
headline metrics, with fiscal-period re-aggregation on top.
"""

from .extractors import extract_dashboard
from .models import DashboardMetrics
from .period_aggregator import summarize_period
from .pipeline import process_workbook

__all__ = ["extract_dashboard", "DashboardMetrics", "summarize_period", "process_workbook"]
