"""Tracker workbook processing and CLI.

``process_workbook`` is the whole engine for one upload: read the sheets,
extract, return a fresh ``DashboardMetrics``. ``run_tracker`` wraps it with
configuration, logging, JSON/CSV export and the optional dashboard store.
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .concerns import scorecard_status
from .config import TrackerConfig, load_config
from .extractors import IFD_SHEET, OTD_SHEET, TRACKER_SHEET, extract_dashboard
from .fiscal_calendar import PERIODS
from .logging_utils import end_phase_timer, get_logger, start_phase_timer
from .models import DashboardMetrics
from .period_aggregator import PeriodSummary, summarize_period
from .storage import DashboardStore
from .workbook_reader import read_workbook


LOGGER_NAME = "weeklytracker.pipeline"
TRACKER_SHEETS = (TRACKER_SHEET, OTD_SHEET, IFD_SHEET)


@dataclass
class TrackerRunResult:
    """Outcome of :func:`run_tracker`."""

    input_path: str
    metrics: DashboardMetrics
    json_path: Optional[Path] = None
    csv_paths: List[Path] = field(default_factory=list)
    dashboard_id: Optional[str] = None
    period_summary: Optional[PeriodSummary] = None
    timings: Dict[str, float] = field(default_factory=dict)


def process_workbook(source: Union[str, Path, bytes, bytearray]) -> DashboardMetrics:
    """Parse the workbook and extract its dashboard metrics.

    Raises ``WorkbookParseError`` when the container is unreadable; a missing
    sheet is not an error.
    """
    sheets = read_workbook(source, sheet_names=TRACKER_SHEETS)
    return extract_dashboard(sheets)


def write_json(metrics: DashboardMetrics, path: Path, extra: Optional[Dict[str, Any]] = None) -> Path:
    payload = metrics.to_dict()
    if extra:
        payload.update(extra)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def write_csv_tables(metrics: DashboardMetrics, output_dir: Path) -> List[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: List[Path] = []
    for name, frame in metrics.to_frames().items():
        p = output_dir / f"{name}.csv"
        frame.to_csv(p, index=False)
        paths.append(p)
    return paths


def run_tracker(
    input_path: Union[str, Path],
    config: Optional[TrackerConfig] = None,
    output_path: Optional[Union[str, Path]] = None,
    period: Optional[str] = None,
    regions: Sequence[str] = (),
    areas: Sequence[str] = (),
    store: bool = False,
    csv: bool = False,
) -> TrackerRunResult:
    cfg = config or TrackerConfig()
    logger = get_logger(cfg)
    timings: Dict[str, float] = {}

    t0 = start_phase_timer("extract")
    metrics = process_workbook(input_path)
    end_phase_timer("extract", t0, timings, logger)
    logger.info(
        "Extracted %d KPI rows, %d OTD / %d IFD areas, %d concerns, latest week %d",
        len(metrics.kpi_data),
        len(metrics.otd_data),
        len(metrics.ifd_data),
        len(metrics.concerns),
        metrics.latest_week,
    )

    result = TrackerRunResult(input_path=str(input_path), metrics=metrics, timings=timings)

    if period:
        result.period_summary = summarize_period(metrics, period, regions, areas, cfg.fiscal_year_label)

    out_dir = Path(cfg.paths.output_dir)
    json_path = Path(output_path) if output_path else out_dir / f"{Path(input_path).stem}.json"
    extra: Dict[str, Any] = {"fileName": Path(input_path).name, "status": scorecard_status(metrics)}
    if result.period_summary is not None:
        extra["periodSummary"] = result.period_summary.to_dict()
    result.json_path = write_json(metrics, json_path, extra)
    logger.info("Wrote %s", result.json_path)

    if csv:
        result.csv_paths = write_csv_tables(metrics, out_dir / Path(input_path).stem)

    if store:
        t1 = start_phase_timer("store")
        with DashboardStore(cfg.storage.database, batch_size=cfg.storage.batch_size) as db:
            result.dashboard_id = db.save(metrics, Path(input_path).name)
        end_phase_timer("store", t1, timings, logger)

    return result


def print_latest(config: TrackerConfig) -> None:
    with DashboardStore(config.storage.database, batch_size=config.storage.batch_size) as db:
        latest = db.load_latest()
        history = db.history(config.storage.history_limit)
    if latest is None:
        print("No dashboards stored.")
        return
    print(json.dumps({"latest": latest.to_dict(), "history": history}, indent=2, default=str))


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weekly Business Tracker extraction")
    parser.add_argument("--input", help="Path to the tracker workbook (.xlsx)")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--output", help="JSON output path (default: <output_dir>/<input stem>.json)")
    parser.add_argument("--period", choices=PERIODS, help="Also aggregate metrics over this fiscal period")
    parser.add_argument("--region", action="append", default=[], help="Restrict the period summary to a region (repeatable)")
    parser.add_argument("--area", action="append", default=[], help="Restrict the period summary to an area (repeatable)")
    parser.add_argument("--csv", action="store_true", help="Also write one CSV per record collection")
    parser.add_argument("--store", action="store_true", help="Save the result to the dashboard store")
    parser.add_argument("--latest", action="store_true", help="Print the latest stored dashboard and exit")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    if args.latest:
        print_latest(config)
        return
    if not args.input:
        parser.error("--input is required unless --latest is given")
    result = run_tracker(
        args.input,
        config=config,
        output_path=args.output,
        period=args.period,
        regions=args.region,
        areas=args.area,
        store=args.store,
        csv=args.csv,
    )
    if result.period_summary is not None:
        print(json.dumps(result.period_summary.to_dict(), indent=2))
    if result.dashboard_id:
        logging.getLogger(LOGGER_NAME).info("Dashboard id: %s", result.dashboard_id)


if __name__ == "__main__":  # pragma: no cover - CLI guard
    main()
