from __future__ import annotations

import math
from typing import Any, Iterable, Optional

import numpy as np


def cell_number(value: Any) -> float | None:
    """Return a numeric cell as float, anything else as None.

    Text is never coerced: a cell holding "95%" or "1,234" is a type mismatch
    and reads as missing. Booleans are not numbers here. NumPy scalars (grids
    built from a DataFrame) are accepted.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return None
    v = float(value)
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def normalize_percentage(raw: float) -> float:
    """Map a fraction-or-percentage value onto the 0-100 scale.

    Values ``<= 1`` are read as fractions and multiplied by 100, larger values
    are taken as percentages already. A literal ``1`` therefore becomes 100.
    """
    if raw <= 1:
        return raw * 100
    return raw


def normalize_optional_percentage(raw: Optional[float]) -> float | None:
    if raw is None:
        return None
    return normalize_percentage(raw)


def variance_percent(actual: Optional[float], budget: Optional[float]) -> float | None:
    # null budget, zero budget or null actual -> no variance
    if actual is None or budget is None or budget == 0:
        return None
    return (actual - budget) / budget * 100


def safe_mean(values: Iterable[float]) -> float:
    vals = [v for v in values if v is not None]
    if not vals:
        return 0.0
    return sum(vals) / len(vals)
