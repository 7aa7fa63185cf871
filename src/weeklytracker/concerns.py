"""Fixed KPI targets, concern detection and RAG grading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .models import PRIORITY_CRITICAL, PRIORITY_WARNING, ConcernItem, DashboardMetrics


HIGHER_IS_BETTER = "higher"
LOWER_IS_BETTER = "lower"


@dataclass(frozen=True)
class KPITarget:
    target: float
    direction: str = HIGHER_IS_BETTER


KPI_TARGETS: Dict[str, KPITarget] = {
    "GM2% on Sale": KPITarget(8),
    "EstimatedPBT%": KPITarget(3),
    "OnTime Delivery": KPITarget(95),
    "In Full Delivery": KPITarget(92),
    "LHC Advance %": KPITarget(80),
}

# scalar on DashboardMetrics -> KPI_TARGETS key
SCALAR_TARGETS: Dict[str, str] = {
    "gm2_percent": "GM2% on Sale",
    "pbt_percent": "EstimatedPBT%",
    "otd_percent": "OnTime Delivery",
    "ifd_percent": "In Full Delivery",
    "lhc_advance": "LHC Advance %",
}


@dataclass(frozen=True)
class DeliveryThresholds:
    """Concern bands of a delivery KPI: below ``low`` warns, below ``critical`` escalates."""

    target: float
    low: float
    critical: float


OTD_THRESHOLDS = DeliveryThresholds(target=95, low=92, critical=90)
IFD_THRESHOLDS = DeliveryThresholds(target=92, low=88, critical=85)


def _fmt_pct(value: float) -> str:
    return f"{value:.1f}%"


def _fmt_target(value: float) -> str:
    return f"{value:g}%"


def delivery_concern(
    region: str,
    area: str,
    kpi_label: str,
    actual: float,
    thresholds: DeliveryThresholds,
) -> Optional[ConcernItem]:
    """Return a concern when ``actual`` is under the low watermark, else None."""
    if actual >= thresholds.low:
        return None
    priority = PRIORITY_CRITICAL if actual < thresholds.critical else PRIORITY_WARNING
    return ConcernItem(
        priority=priority,
        region=region,
        area=area,
        kpi=kpi_label,
        actual=_fmt_pct(actual),
        target=_fmt_target(thresholds.target),
        gap=_fmt_pct(actual - thresholds.target),
    )


def sort_concerns(concerns: Iterable[ConcernItem]) -> List[ConcernItem]:
    # sorted() is stable, so order within a priority is preserved
    return sorted(concerns, key=lambda c: 0 if c.priority == PRIORITY_CRITICAL else 1)


def rag_status(value: float, target: float, direction: str = HIGHER_IS_BETTER) -> str:
    """Grade ``value`` against ``target``: green on/above, amber within 10%, red beyond."""
    if not target:
        return "green" if value >= target else "red"
    if direction == LOWER_IS_BETTER:
        variance = (target - value) / target * 100
    else:
        variance = (value - target) / target * 100
    if variance >= 0:
        return "green"
    if variance >= -10:
        return "amber"
    return "red"


def scorecard_status(metrics: DashboardMetrics) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for attr, kpi in SCALAR_TARGETS.items():
        t = KPI_TARGETS[kpi]
        out[attr] = rag_status(float(getattr(metrics, attr)), t.target, t.direction)
    return out
