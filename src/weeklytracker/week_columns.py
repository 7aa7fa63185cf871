"""Week-column detection for the tracker workbook header rows.

Two header dialects are supported, selected by sheet:

- ``"block"`` (Weekly Business Tracker): one marker per week block. The marker
  column holds the planned value, the actual sits one column to the right and
  the block spans ``TRACKER_WEEK_STRIDE`` columns (planned, actual, score).
- ``"paired"`` (delivery sheets): the marker appears on both the plan and the
  actual column. The first time a week number is seen opens the pair and the
  next column closes it as the actual, whatever its label says.

Columns whose label does not look like a week marker are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .metric_normalizer import cell_text


WEEK_MARKER_PATTERN = re.compile(r"week\s*[-–]?\s*(\d+)", flags=re.IGNORECASE)

TRACKER_WEEK_STRIDE = 3


@dataclass(frozen=True)
class WeekColumn:
    week_number: int
    plan_col: int
    actual_col: int


def parse_week_marker(value: Any) -> Optional[int]:
    """Return the week number in labels like 'Week - 43 (27 Jan)', else None."""
    text = cell_text(value)
    if not text:
        return None
    m = WEEK_MARKER_PATTERN.search(text)
    if not m:
        return None
    return int(m.group(1))


def detect_block_week_columns(header: Sequence[Any], stride: int = TRACKER_WEEK_STRIDE) -> List[WeekColumn]:
    """Block dialect: marker = plan column, actual = plan + 1.

    Every marker opens a week; only a repeat of the open week within ``stride``
    columns of its marker is treated as part of the same block.
    """
    if stride < 2:
        raise ValueError("stride must cover at least a plan and an actual column")
    out: List[WeekColumn] = []
    last: Optional[WeekColumn] = None
    for j, value in enumerate(header):
        week = parse_week_marker(value)
        if week is None:
            continue
        # merged block labels may repeat the open week inside its block
        if last is not None and week == last.week_number and j < last.plan_col + stride:
            continue
        last = WeekColumn(week, j, j + 1)
        out.append(last)
    return out


def detect_paired_week_columns(header: Sequence[Any]) -> List[WeekColumn]:
    """Paired dialect: first sighting of a week is the plan, next column the actual."""
    out: List[WeekColumn] = []
    seen: set[int] = set()
    pending: Optional[tuple[int, int]] = None
    for j, value in enumerate(header):
        if pending is not None:
            week, plan_col = pending
            out.append(WeekColumn(week, plan_col, j))
            pending = None
            continue
        week = parse_week_marker(value)
        if week is None or week in seen:
            continue
        seen.add(week)
        pending = (week, j)
    if pending is not None:
        # header ends on a plan column; the actual is the next (empty) column
        week, plan_col = pending
        out.append(WeekColumn(week, plan_col, plan_col + 1))
    return out


_DIALECTS: Dict[str, Callable[[Sequence[Any]], List[WeekColumn]]] = {
    "block": detect_block_week_columns,
    "paired": detect_paired_week_columns,
}


def extract_week_columns(header: Sequence[Any], dialect: str) -> List[WeekColumn]:
    try:
        strategy = _DIALECTS[dialect]
    except KeyError:
        raise ValueError(f"Unknown week header dialect '{dialect}'") from None
    return strategy(header or [])

