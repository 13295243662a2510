"""
Wall-clock and calendar-date helpers.

Times are 'HH:MM' strings (a trailing ':SS' is read and ignored), dates are
'YYYY-MM-DD' strings.
Nothing here raises on bad input: lessons are often half-typed while being edited,
so a malformed time counts as minute 0 and a malformed date as "no date".

Overlap rule (half-open intervals):
    start < other_end AND other_start < end
"""

from __future__ import annotations

import logging
from datetime import date as _date
from typing import Optional

logger = logging.getLogger(__name__)


def _split_time(hhmm: str) -> Optional[tuple[int, int]]:
    # 'HH:MM', or 'HH:MM:SS' as returned by SQL time columns (seconds dropped)
    parts = str(hhmm or "").strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        values = [int(p) for p in parts]
    except ValueError:
        return None
    h, m = values[0], values[1]
    if not (0 <= h <= 23 and 0 <= m <= 59):
        return None
    if len(values) == 3 and not 0 <= values[2] <= 59:
        return None
    return h, m


def to_minutes(hhmm: str) -> int:
    """
    Convert 'HH:MM' (or 'HH:MM:SS') to minutes since midnight.
    Returns 0 for empty, malformed or out-of-range values.
    """
    parsed = _split_time(hhmm)
    if parsed is None:
        if hhmm:
            logger.debug("Malformed time %r, using 0", hhmm)
        return 0
    h, m = parsed
    return h * 60 + m


def normalize_time(hhmm: str) -> Optional[str]:
    """
    Return the zero-padded 'HH:MM' form of a time, or None if it cannot be read.
    """
    parsed = _split_time(hhmm)
    if parsed is None:
        return None
    return f"{parsed[0]:02d}:{parsed[1]:02d}"


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # zero-length or inverted intervals never overlap anything
    if a_start >= a_end or b_start >= b_end:
        return False
    return a_start < b_end and b_start < a_end


def duration_minutes(start: str, end: str) -> int:
    """
    Length of a time range in minutes, clamped at 0 for inverted ranges.
    """
    return max(0, to_minutes(end) - to_minutes(start))


def start_hour(hhmm: str) -> int:
    return to_minutes(hhmm) // 60


def date_parts(date: str) -> Optional[tuple[int, int, int]]:
    """
    Split 'YYYY-MM-DD' into (year, month, day) straight from the string.
    Returns None if the string does not have that shape.
    """
    parts = str(date or "").strip().split("-")
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(p) for p in parts)
    except ValueError:
        return None
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return year, month, day


def normalize_date(value: str) -> Optional[str]:
    """
    Return a real calendar date as zero-padded 'YYYY-MM-DD' ('2024-3-11' -> '2024-03-11'),
    or None if it is malformed or does not exist ('2024-02-31').
    """
    parts = date_parts(value)
    if parts is None:
        return None
    try:
        return _date(*parts).isoformat()
    except ValueError:
        return None
