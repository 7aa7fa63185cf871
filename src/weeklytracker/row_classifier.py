"""Row classification and region carry-forward for tracker sheets.

Spreadsheet groups write the region label once and leave it blank on the
following rows. ``RegionCursor`` carries the last non-empty label forward over
one pass of a sheet; ``classify_row`` decides whether a row yields a record.
Skipped rows still move the cursor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Sequence

from .metric_normalizer import cell_text


ROW_DATA = "data"
ROW_EMPTY = "empty"
ROW_HEADER = "header"
ROW_SUBTOTAL = "subtotal"
ROW_GRAND_TOTAL = "grand_total"

SUBTOTAL_AREAS: FrozenSet[str] = frozenset({"Contract Execution"})
TOTAL_MARKER = "total"


@dataclass(frozen=True)
class RowRules:
    """Column layout and header literals of one sheet."""

    region_col: int
    area_col: int
    label_col: int
    header_labels: FrozenSet[str] = field(default_factory=frozenset)
    region_header_labels: FrozenSet[str] = field(default_factory=frozenset)


def row_value(row: Sequence[Any], col: int) -> Any:
    if row is None or col >= len(row):
        return None
    return row[col]


class RegionCursor:
    """Mutable current-region label scoped to one sheet pass."""

    def __init__(self, ignored_labels: FrozenSet[str] = frozenset()) -> None:
        self.current = ""
        self._ignored = ignored_labels

    def advance(self, row: Sequence[Any], region_col: int) -> str:
        label = cell_text(row_value(row, region_col))
        if label and label not in self._ignored:
            self.current = label
        return self.current


def is_subtotal_area(area: str) -> bool:
    return area in SUBTOTAL_AREAS or TOTAL_MARKER in area.lower()


def is_grand_total_region(region: str) -> bool:
    return TOTAL_MARKER in region.lower()


def classify_row(row: Sequence[Any], region: str, rules: RowRules) -> str:
    """Return one of the ``ROW_*`` kinds for ``row`` under the carried ``region``."""
    label = cell_text(row_value(row, rules.label_col))
    if not label:
        return ROW_EMPTY
    if label in rules.header_labels:
        return ROW_HEADER
    area = cell_text(row_value(row, rules.area_col))
    if is_subtotal_area(area):
        return ROW_SUBTOTAL
    if is_grand_total_region(region):
        return ROW_GRAND_TOTAL
    return ROW_DATA
