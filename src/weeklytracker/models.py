"""Record types produced by one extraction run.

Every record serializes to the camelCase keys used by the dashboard JSON and
the persisted rows (``to_dict``); ``DashboardMetrics.from_dict`` reverses it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd


KPI_TYPE_OTD = "OTD"
KPI_TYPE_IFD = "IFD"

PRIORITY_CRITICAL = "critical"
PRIORITY_WARNING = "warning"


@dataclass(frozen=True)
class KPIRecord:
    region: str
    area: str
    kpi: str
    uom: str
    fy25_budget: Optional[float]
    fy25_actual: Optional[float]
    variance: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "area": self.area,
            "kpi": self.kpi,
            "uom": self.uom,
            "fy25Budget": self.fy25_budget,
            "fy25Actual": self.fy25_actual,
            "variance": self.variance,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "KPIRecord":
        return KPIRecord(
            region=d.get("region") or "",
            area=d.get("area") or "",
            kpi=d.get("kpi") or "",
            uom=d.get("uom") or "",
            fy25_budget=d.get("fy25Budget"),
            fy25_actual=d.get("fy25Actual"),
            variance=d.get("variance"),
        )


@dataclass(frozen=True)
class DeliveryRecord:
    """Latest-week OTD/IFD snapshot of one area (values on the 0-100 scale)."""

    region: str
    area: str
    kpi_type: str
    plan: float
    actual: float
    variance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "area": self.area,
            "kpiType": self.kpi_type,
            "plan": self.plan,
            "actual": self.actual,
            "variance": self.variance,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any], kpi_type: Optional[str] = None) -> "DeliveryRecord":
        return DeliveryRecord(
            region=d.get("region") or "",
            area=d.get("area") or "",
            kpi_type=kpi_type or d.get("kpiType") or "",
            plan=d.get("plan"),
            actual=d.get("actual"),
            variance=d.get("variance"),
        )


@dataclass(frozen=True)
class WeeklyDeliveryPoint:
    region: str
    area: str
    kpi_type: str
    week_number: int
    plan: Optional[float]
    actual: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "area": self.area,
            "kpiType": self.kpi_type,
            "weekNumber": self.week_number,
            "plan": self.plan,
            "actual": self.actual,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any], kpi_type: Optional[str] = None) -> "WeeklyDeliveryPoint":
        return WeeklyDeliveryPoint(
            region=d.get("region") or "",
            area=d.get("area") or "",
            kpi_type=kpi_type or d.get("kpiType") or "",
            week_number=int(d.get("weekNumber") or 0),
            plan=d.get("plan"),
            actual=d.get("actual"),
        )


@dataclass(frozen=True)
class WeeklyKPIPoint:
    region: str
    area: str
    kpi: str
    week_number: int
    planned: Optional[float]
    actual: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "region": self.region,
            "area": self.area,
            "kpi": self.kpi,
            "weekNumber": self.week_number,
            "planned": self.planned,
            "actual": self.actual,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "WeeklyKPIPoint":
        return WeeklyKPIPoint(
            region=d.get("region") or "",
            area=d.get("area") or "",
            kpi=d.get("kpi") or "",
            week_number=int(d.get("weekNumber") or 0),
            planned=d.get("planned"),
            actual=d.get("actual"),
        )


@dataclass(frozen=True)
class ConcernItem:
    priority: str
    region: str
    area: str
    kpi: str
    actual: str
    target: str
    gap: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "region": self.region,
            "area": self.area,
            "kpi": self.kpi,
            "actual": self.actual,
            "target": self.target,
            "gap": self.gap,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ConcernItem":
        return ConcernItem(**{k: d.get(k) or "" for k in ("priority", "region", "area", "kpi", "actual", "target", "gap")})


SCALAR_FIELDS = {
    "freight_booking": "freightBooking",
    "gm2_percent": "gm2Percent",
    "pbt_percent": "pbtPercent",
    "otd_percent": "otdPercent",
    "ifd_percent": "ifdPercent",
    "lhc_advance": "lhcAdvance",
}


@dataclass
class DashboardMetrics:
    """Aggregate root of one extraction run."""

    freight_booking: float = 0.0
    gm2_percent: float = 0.0
    pbt_percent: float = 0.0
    otd_percent: float = 0.0
    ifd_percent: float = 0.0
    lhc_advance: float = 0.0
    kpi_data: List[KPIRecord] = field(default_factory=list)
    otd_data: List[DeliveryRecord] = field(default_factory=list)
    ifd_data: List[DeliveryRecord] = field(default_factory=list)
    concerns: List[ConcernItem] = field(default_factory=list)
    weekly_otd: List[WeeklyDeliveryPoint] = field(default_factory=list)
    weekly_ifd: List[WeeklyDeliveryPoint] = field(default_factory=list)
    weekly_kpi: List[WeeklyKPIPoint] = field(default_factory=list)
    latest_week: int = 0

    def scalars(self) -> Dict[str, float]:
        return {camel: getattr(self, attr) for attr, camel in SCALAR_FIELDS.items()}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.scalars())
        out.update(
            {
                "kpiData": [r.to_dict() for r in self.kpi_data],
                "otdData": [r.to_dict() for r in self.otd_data],
                "ifdData": [r.to_dict() for r in self.ifd_data],
                "concerns": [c.to_dict() for c in self.concerns],
                "weeklyOTD": [p.to_dict() for p in self.weekly_otd],
                "weeklyIFD": [p.to_dict() for p in self.weekly_ifd],
                "weeklyKPI": [p.to_dict() for p in self.weekly_kpi],
                "latestWeek": self.latest_week,
            }
        )
        return out

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DashboardMetrics":
        kwargs: Dict[str, Any] = {attr: float(d.get(camel) or 0.0) for attr, camel in SCALAR_FIELDS.items()}
        return DashboardMetrics(
            kpi_data=[KPIRecord.from_dict(r) for r in d.get("kpiData") or []],
            otd_data=[DeliveryRecord.from_dict(r, KPI_TYPE_OTD) for r in d.get("otdData") or []],
            ifd_data=[DeliveryRecord.from_dict(r, KPI_TYPE_IFD) for r in d.get("ifdData") or []],
            concerns=[ConcernItem.from_dict(c) for c in d.get("concerns") or []],
            weekly_otd=[WeeklyDeliveryPoint.from_dict(p, KPI_TYPE_OTD) for p in d.get("weeklyOTD") or []],
            weekly_ifd=[WeeklyDeliveryPoint.from_dict(p, KPI_TYPE_IFD) for p in d.get("weeklyIFD") or []],
            weekly_kpi=[WeeklyKPIPoint.from_dict(p) for p in d.get("weeklyKPI") or []],
            latest_week=int(d.get("latestWeek") or 0),
            **kwargs,
        )

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """Return one DataFrame per record collection, keyed by JSON name."""
        collections = {
            "kpiData": (self.kpi_data, ["region", "area", "kpi", "uom", "fy25Budget", "fy25Actual", "variance"]),
            "otdData": (self.otd_data, ["region", "area", "kpiType", "plan", "actual", "variance"]),
            "ifdData": (self.ifd_data, ["region", "area", "kpiType", "plan", "actual", "variance"]),
            "concerns": (self.concerns, ["priority", "region", "area", "kpi", "actual", "target", "gap"]),
            "weeklyOTD": (self.weekly_otd, ["region", "area", "kpiType", "weekNumber", "plan", "actual"]),
            "weeklyIFD": (self.weekly_ifd, ["region", "area", "kpiType", "weekNumber", "plan", "actual"]),
            "weeklyKPI": (self.weekly_kpi, ["region", "area", "kpi", "weekNumber", "planned", "actual"]),
        }
        frames: Dict[str, pd.DataFrame] = {}
        for name, (records, columns) in collections.items():
            frames[name] = pd.DataFrame([r.to_dict() for r in records], columns=columns)
        return frames
