"""End-to-end tests: workbook on disk -> metrics -> JSON/CSV/store."""
from __future__ import annotations

import json
from pathlib import Path
from textwrap import dedent

import pytest
from openpyxl import Workbook

from weeklytracker.config import load_config
from weeklytracker.extractors import IFD_SHEET, OTD_SHEET, TRACKER_SHEET
from weeklytracker.pipeline import main, process_workbook, run_tracker
from weeklytracker.workbook_reader import WorkbookParseError, read_workbook


def _tracker_row(region, area, kpi, uom, budget, actual, plan_w43, actual_w43):
    return [region, area, None, kpi, uom, None, None, None, None, budget, None, actual, plan_w43, actual_w43, None]


def build_workbook(path: Path, sheets=(TRACKER_SHEET, OTD_SHEET, IFD_SHEET)) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    if TRACKER_SHEET in sheets:
        ws = wb.create_sheet(TRACKER_SHEET)
        ws.append([None] * 12 + ["Week - 43 (27 Jan)"])
        ws.append(["Region", "Area", None, "KPI", "UOM"] + [None] * 7 + ["Planned", "Actual", "Score"])
        ws.append(_tracker_row("East", "Mumbai", "Freight Booking", "Cr", 100, 120, 10, 12))
        ws.append(_tracker_row(None, "Pune", "GM2% on Sale", "%", 8, 9, 8, 9))
    if OTD_SHEET in sheets:
        ws = wb.create_sheet(OTD_SHEET)
        ws.append([None, None, None, 1, 2])
        ws.append([None, None, None, "Week-1", "Week-1"])
        ws.append(["Region Name", "Area Name", "KPI", "Plan", "Actual"])
        ws.append(["East", "Mumbai", "OTD", 0.95, 0.88])
    if IFD_SHEET in sheets:
        ws = wb.create_sheet(IFD_SHEET)
        ws.append([None, None, None, 1, 2])
        ws.append([None, None, None, "Week-1", "Week-1"])
        ws.append(["Region Name", "Area Name", "KPI", "Plan", "Actual"])
        ws.append(["East", "Mumbai", "IFD", 0.92, 0.95])
    if "Notes" in sheets:
        wb.create_sheet("Notes").append(["nothing to see"])
    wb.save(path)
    return path


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    return build_workbook(tmp_path / "tracker.xlsx")


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        dedent(
            f"""
            paths:
              logs_dir: {tmp_path / 'logs'}
              output_dir: {tmp_path / 'output'}
            logging:
              level: DEBUG
            storage:
              database: {tmp_path / 'db' / 'dashboards.duckdb'}
              batch_size: 1
              history_limit: 5
            fiscal_year_label: FY26
            """
        ).strip(),
        encoding="utf-8",
    )
    return path


def test_read_workbook_only_requested_sheets(workbook: Path):
    sheets = read_workbook(workbook, sheet_names=[OTD_SHEET, "Absent"])
    assert list(sheets) == [OTD_SHEET]
    assert sheets[OTD_SHEET][3][:3] == ["East", "Mumbai", "OTD"]


def test_process_workbook(workbook: Path):
    m = process_workbook(workbook)
    assert [r.kpi for r in m.kpi_data] == ["Freight Booking", "GM2% on Sale"]
    assert m.kpi_data[1].region == "East"
    assert m.freight_booking == pytest.approx(120.0)
    assert m.gm2_percent == pytest.approx(9.0)
    assert m.otd_percent == pytest.approx(88.0)
    assert m.ifd_percent == pytest.approx(95.0)
    assert [(c.kpi, c.priority) for c in m.concerns] == [("On-Time Delivery", "critical")]
    assert [(p.kpi, p.week_number) for p in m.weekly_kpi] == [("Freight Booking", 43), ("GM2% on Sale", 43)]
    assert m.latest_week == 43


def test_bytes_and_path_give_same_result(workbook: Path):
    assert process_workbook(workbook.read_bytes()).to_dict() == process_workbook(workbook).to_dict()


def test_missing_sheets_yield_defaults(tmp_path: Path):
    path = build_workbook(tmp_path / "other.xlsx", sheets=("Notes",))
    m = process_workbook(path)
    assert m.kpi_data == [] and m.otd_data == [] and m.concerns == []
    assert m.freight_booking == 0.0
    assert m.latest_week == 0


def test_unparseable_container(tmp_path: Path):
    with pytest.raises(WorkbookParseError):
        process_workbook(b"this is not a spreadsheet")
    broken = tmp_path / "broken.xlsx"
    broken.write_bytes(b"garbage")
    with pytest.raises(WorkbookParseError):
        process_workbook(broken)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        process_workbook(tmp_path / "nope.xlsx")


def test_run_tracker_writes_outputs(workbook: Path, config_path: Path, tmp_path: Path):
    cfg = load_config(config_path)
    result = run_tracker(workbook, config=cfg, period="ytd", store=True, csv=True)

    payload = json.loads(result.json_path.read_text(encoding="utf-8"))
    assert result.json_path == tmp_path / "output" / "tracker.json"
    assert payload["fileName"] == "tracker.xlsx"
    assert payload["latestWeek"] == 43
    assert payload["status"]["otd_percent"] == "amber"
    assert payload["periodSummary"]["label"] == "YTD FY26 (W1-W43)"

    assert sorted(p.name for p in result.csv_paths) == sorted(
        f"{name}.csv" for name in ("kpiData", "otdData", "ifdData", "concerns", "weeklyOTD", "weeklyIFD", "weeklyKPI")
    )
    assert result.dashboard_id
    assert {"extract", "store"} <= set(result.timings)
    assert (tmp_path / "logs" / "tracker.log").exists()


def test_cli_run_and_latest(workbook: Path, config_path: Path, tmp_path: Path, capsys):
    main(["--config", str(config_path), "--latest"])
    assert "No dashboards stored." in capsys.readouterr().out

    out_json = tmp_path / "custom" / "result.json"
    main(
        [
            "--input", str(workbook),
            "--config", str(config_path),
            "--output", str(out_json),
            "--period", "week",
            "--region", "East",
            "--store",
        ]
    )
    summary = json.loads(capsys.readouterr().out)
    assert summary["label"] == "W43"
    assert summary["freightBooking"] == pytest.approx(12.0)
    assert out_json.exists()

    main(["--config", str(config_path), "--latest"])
    printed = json.loads(capsys.readouterr().out)
    assert printed["latest"]["fileName"] == "tracker.xlsx"
    assert printed["latest"]["latestWeek"] == 43
    assert len(printed["history"]) == 1


def test_cli_requires_input(config_path: Path):
    with pytest.raises(SystemExit):
        main(["--config", str(config_path)])
    with pytest.raises(SystemExit):
        main(["--input", "x.xlsx", "--period", "fortnight"])
