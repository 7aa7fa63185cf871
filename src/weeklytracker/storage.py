"""DuckDB-backed dashboard store.

Each saved extraction becomes one ``dashboards`` row plus its record
collections flattened into child tables keyed by ``dashboard_id``. Reads
rebuild the same ``DashboardMetrics`` shape from the most recent dashboard.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import duckdb

from .models import KPI_TYPE_IFD, KPI_TYPE_OTD, DashboardMetrics


LOGGER = logging.getLogger("weeklytracker.storage")

SCHEMA_SQL = [
    "CREATE SEQUENCE IF NOT EXISTS dashboard_seq",
    """
    CREATE TABLE IF NOT EXISTS dashboards (
      id VARCHAR PRIMARY KEY,
      seq BIGINT DEFAULT nextval('dashboard_seq'),
      file_name VARCHAR NOT NULL,
      freight_booking DOUBLE,
      gm2_percent DOUBLE,
      pbt_percent DOUBLE,
      otd_percent DOUBLE,
      ifd_percent DOUBLE,
      lhc_advance DOUBLE,
      latest_week INTEGER,
      created_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kpi_data (
      dashboard_id VARCHAR, row_index INTEGER, region VARCHAR, area VARCHAR, kpi VARCHAR, uom VARCHAR,
      fy25_budget DOUBLE, fy25_actual DOUBLE, variance DOUBLE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS delivery_kpi (
      dashboard_id VARCHAR, row_index INTEGER, region VARCHAR, area VARCHAR,
      plan DOUBLE, actual DOUBLE, variance DOUBLE, kpi_type VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS concerns (
      dashboard_id VARCHAR, row_index INTEGER, priority VARCHAR, region VARCHAR, area VARCHAR,
      kpi VARCHAR, actual VARCHAR, target VARCHAR, gap VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS delivery_kpi_weekly (
      dashboard_id VARCHAR, row_index INTEGER, region VARCHAR, area VARCHAR, kpi_type VARCHAR,
      week_number INTEGER, plan DOUBLE, actual DOUBLE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kpi_weekly (
      dashboard_id VARCHAR, row_index INTEGER, region VARCHAR, area VARCHAR, kpi VARCHAR,
      week_number INTEGER, planned DOUBLE, actual DOUBLE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_dashboards_created_at ON dashboards(created_at)",
]

# table -> columns written after (dashboard_id, row_index)
TABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "kpi_data": ("region", "area", "kpi", "uom", "fy25_budget", "fy25_actual", "variance"),
    "delivery_kpi": ("region", "area", "plan", "actual", "variance", "kpi_type"),
    "concerns": ("priority", "region", "area", "kpi", "actual", "target", "gap"),
    "delivery_kpi_weekly": ("region", "area", "kpi_type", "week_number", "plan", "actual"),
    "kpi_weekly": ("region", "area", "kpi", "week_number", "planned", "actual"),
}


@dataclass
class StoredDashboard:
    id: str
    file_name: str
    created_at: datetime
    metrics: DashboardMetrics

    def to_dict(self) -> Dict[str, Any]:
        out = self.metrics.to_dict()
        out.update({"id": self.id, "fileName": self.file_name, "createdAt": self.created_at.isoformat()})
        return out


def _chunks(rows: Sequence[tuple], size: int):
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def _flatten(metrics: DashboardMetrics, dashboard_id: str) -> Dict[str, List[tuple]]:
    def numbered(items):
        return [(dashboard_id, pos, *values) for pos, values in enumerate(items)]

    delivery = [(r.region, r.area, r.plan, r.actual, r.variance, KPI_TYPE_OTD) for r in metrics.otd_data]
    delivery += [(r.region, r.area, r.plan, r.actual, r.variance, KPI_TYPE_IFD) for r in metrics.ifd_data]
    weekly = [(p.region, p.area, KPI_TYPE_OTD, p.week_number, p.plan, p.actual) for p in metrics.weekly_otd]
    weekly += [(p.region, p.area, KPI_TYPE_IFD, p.week_number, p.plan, p.actual) for p in metrics.weekly_ifd]
    return {
        "kpi_data": numbered(
            (r.region, r.area, r.kpi, r.uom, r.fy25_budget, r.fy25_actual, r.variance) for r in metrics.kpi_data
        ),
        "delivery_kpi": numbered(delivery),
        "concerns": numbered(
            (c.priority, c.region, c.area, c.kpi, c.actual, c.target, c.gap) for c in metrics.concerns
        ),
        "delivery_kpi_weekly": numbered(weekly),
        "kpi_weekly": numbered(
            (p.region, p.area, p.kpi, p.week_number, p.planned, p.actual) for p in metrics.weekly_kpi
        ),
    }


class DashboardStore:
    """Persist and reload extraction results.

    Usable as a context manager; the connection is opened on first use.
    """

    def __init__(self, database: str | Path = ":memory:", batch_size: int = 500) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.database = str(database)
        self.batch_size = batch_size
        self._con: Optional[duckdb.DuckDBPyConnection] = None

    def __enter__(self) -> "DashboardStore":
        self._open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        return self._open()

    def _open(self) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            if self.database != ":memory:":
                Path(self.database).parent.mkdir(parents=True, exist_ok=True)
            self._con = duckdb.connect(database=self.database)
            for stmt in SCHEMA_SQL:
                self._con.execute(stmt)
        return self._con

    def close(self) -> None:
        if self._con is not None:
            self._con.close()
            self._con = None

    def save(self, metrics: DashboardMetrics, file_name: str, created_at: Optional[datetime] = None) -> str:
        """Insert one dashboard with all of its records; returns the generated id."""
        con = self.connection
        dashboard_id = str(uuid.uuid4())
        stamp = created_at or datetime.now(timezone.utc).replace(tzinfo=None)
        tables = _flatten(metrics, dashboard_id)

        con.execute("BEGIN TRANSACTION")
        try:
            con.execute(
                """
                INSERT INTO dashboards (id, file_name, freight_booking, gm2_percent, pbt_percent,
                  otd_percent, ifd_percent, lhc_advance, latest_week, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    dashboard_id,
                    file_name,
                    metrics.freight_booking,
                    metrics.gm2_percent,
                    metrics.pbt_percent,
                    metrics.otd_percent,
                    metrics.ifd_percent,
                    metrics.lhc_advance,
                    metrics.latest_week or 0,
                    stamp,
                ],
            )
            for table, rows in tables.items():
                if not rows:
                    continue
                cols = ("dashboard_id", "row_index") + TABLE_COLUMNS[table]
                sql = f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})"
                for batch in _chunks(rows, self.batch_size):
                    con.executemany(sql, batch)
                LOGGER.debug("Stored %d rows in %s", len(rows), table)
            con.execute("COMMIT")
        except duckdb.Error:
            con.execute("ROLLBACK")
            LOGGER.error("Failed to save dashboard for %s", file_name)
            raise

        LOGGER.info("Saved dashboard %s (%s)", dashboard_id, file_name)
        return dashboard_id

    def _rows(self, sql: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        cur = self.connection.execute(sql, list(params))
        names = [d[0] for d in cur.description]
        return [dict(zip(names, row)) for row in cur.fetchall()]

    def _children(self, table: str, dashboard_id: str, kpi_type: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = f"SELECT * FROM {table} WHERE dashboard_id = ?"
        params: List[Any] = [dashboard_id]
        if kpi_type is not None:
            sql += " AND kpi_type = ?"
            params.append(kpi_type)
        return self._rows(sql + " ORDER BY row_index", params)

    def load(self, dashboard_id: str) -> Optional[StoredDashboard]:
        head = self._rows("SELECT * FROM dashboards WHERE id = ?", [dashboard_id])
        if not head:
            return None
        return self._rebuild(head[0])

    def load_latest(self) -> Optional[StoredDashboard]:
        head = self._rows("SELECT * FROM dashboards ORDER BY created_at DESC, seq DESC LIMIT 1", [])
        if not head:
            return None
        return self._rebuild(head[0])

    def _rebuild(self, d: Dict[str, Any]) -> StoredDashboard:
        did = d["id"]

        def delivery(row: Dict[str, Any]) -> Dict[str, Any]:
            return {k: row[k] for k in ("region", "area", "plan", "actual", "variance")}

        def weekly(row: Dict[str, Any]) -> Dict[str, Any]:
            return {
                "region": row["region"],
                "area": row["area"],
                "weekNumber": row["week_number"],
                "plan": row["plan"],
                "actual": row["actual"],
            }

        payload = {
            "freightBooking": d["freight_booking"],
            "gm2Percent": d["gm2_percent"],
            "pbtPercent": d["pbt_percent"],
            "otdPercent": d["otd_percent"],
            "ifdPercent": d["ifd_percent"],
            "lhcAdvance": d["lhc_advance"],
            "latestWeek": d["latest_week"],
            "kpiData": [
                {
                    "region": r["region"],
                    "area": r["area"],
                    "kpi": r["kpi"],
                    "uom": r["uom"],
                    "fy25Budget": r["fy25_budget"],
                    "fy25Actual": r["fy25_actual"],
                    "variance": r["variance"],
                }
                for r in self._children("kpi_data", did)
            ],
            "otdData": [delivery(r) for r in self._children("delivery_kpi", did, KPI_TYPE_OTD)],
            "ifdData": [delivery(r) for r in self._children("delivery_kpi", did, KPI_TYPE_IFD)],
            "concerns": [
                {k: r[k] for k in ("priority", "region", "area", "kpi", "actual", "target", "gap")}
                for r in self._children("concerns", did)
            ],
            "weeklyOTD": [weekly(r) for r in self._children("delivery_kpi_weekly", did, KPI_TYPE_OTD)],
            "weeklyIFD": [weekly(r) for r in self._children("delivery_kpi_weekly", did, KPI_TYPE_IFD)],
            "weeklyKPI": [
                {
                    "region": r["region"],
                    "area": r["area"],
                    "kpi": r["kpi"],
                    "weekNumber": r["week_number"],
                    "planned": r["planned"],
                    "actual": r["actual"],
                }
                for r in self._children("kpi_weekly", did)
            ],
        }
        return StoredDashboard(
            id=did,
            file_name=d["file_name"],
            created_at=d["created_at"],
            metrics=DashboardMetrics.from_dict(payload),
        )

    def history(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Return summary rows of the most recent dashboards, newest first."""
        rows = self._rows(
            """
            SELECT id, file_name, created_at, freight_booking, gm2_percent, pbt_percent, otd_percent, ifd_percent
            FROM dashboards ORDER BY created_at DESC, seq DESC LIMIT ?
            """,
            [int(limit)],
        )
        return [
            {
                "id": r["id"],
                "fileName": r["file_name"],
                "createdAt": r["created_at"].isoformat() if r["created_at"] is not None else None,
                "freightBooking": r["freight_booking"],
                "gm2Percent": r["gm2_percent"],
                "pbtPercent": r["pbt_percent"],
                "otdPercent": r["otd_percent"],
                "ifdPercent": r["ifd_percent"],
            }
            for r in rows
        ]
