"""
Normalizers for the loosely typed numbers SP-API hands back.

Planning report cells arrive as text ("1,234", "12.5%", ""), live summaries
as numbers, numeric strings or nulls. Everything here returns a plain float
(or ``None`` for ``pick_number``) and never raises.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Mapping, Optional

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")

AGE_COLUMN_PREFIX = "inv-age-"
# Buckets that end at or before day 90.
_YOUNG_AGE_BUCKETS = ("0-to-90", "0-to-30", "31-to-60", "61-to-90")


def parse_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    if not cleaned:
        return 0.0
    try:
        parsed = float(cleaned)
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def parse_percent(value: Any) -> float:
    """
    Return a ratio from "12.5%", "12.5" or "0.125".

    Report variants disagree on the unit, so bare numbers above 1 are read
    as percentage points.
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, str) and "%" in value:
        return parse_number(value) / 100
    parsed = parse_number(value)
    return parsed / 100 if parsed > 1 else parsed


def compute_age_90_plus(row: Mapping[str, Any]) -> float:
    total = 0.0
    for key, value in row.items():
        if not key.startswith(AGE_COLUMN_PREFIX):
            continue
        if any(bucket in key for bucket in _YOUNG_AGE_BUCKETS):
            continue
        total += parse_number(value)
    return total


def pick_number(*values: Any) -> Optional[float]:
    """First candidate that is present and converts to a finite number."""
    for value in values:
        if value is None or value == "" or isinstance(value, bool):
            continue
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(parsed):
            return parsed
    return None


def pick_text(*values: Any) -> Optional[str]:
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def format_eta(value: Optional[str]) -> str:
    if not value:
        return "TBD"
    candidate = str(value).strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return "TBD"
    return f"{parsed:%b} {parsed.day}"
