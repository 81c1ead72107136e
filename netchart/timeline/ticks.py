"""
X-axis tick computation for chart ranges.
"""

import math
from datetime import datetime, timedelta, tzinfo
from typing import Optional

MINUTE_MS = 60 * 1000


def tick_step_minutes(range_ms: float) -> int:
    hours = range_ms / (60 * MINUTE_MS)
    if hours <= 6:
        return 30
    if hours <= 12:
        return 60
    if hours <= 24:
        return 120
    if hours <= 48:
        return 240
    return 360


def _aligned_start(range_start: int, step_minutes: int, tz: Optional[tzinfo]) -> datetime:
    start = datetime.fromtimestamp(range_start / 1000, tz=tz).replace(second=0, microsecond=0)
    if step_minutes >= 60:
        start = start.replace(minute=0)
        step_hours = step_minutes // 60
        remainder = start.hour % step_hours
        if remainder:
            start += timedelta(hours=step_hours - remainder)
    else:
        remainder = start.minute % step_minutes
        if remainder:
            start += timedelta(minutes=step_minutes - remainder)
    return start


def build_time_ticks(range_start: float, range_end: float, tz: Optional[tzinfo] = None) -> list[int]:
    """
    Compute tick positions (epoch ms) for a display range.

    Ticks fall on step boundaries in the given timezone (local time
    by default) and the range ends are always included.
    """
    if not math.isfinite(range_start) or not math.isfinite(range_end) or range_start >= range_end:
        return []

    range_start = int(range_start)
    range_end = int(range_end)
    step_minutes = tick_step_minutes(range_end - range_start)
    step_ms = step_minutes * MINUTE_MS
    first = int(_aligned_start(range_start, step_minutes, tz).timestamp() * 1000)

    ticks = [t for t in range(first, range_end + 1, step_ms) if t >= range_start]
    if not ticks:
        return [range_start, range_end]

    if ticks[0] != range_start:
        ticks.insert(0, range_start)
    if ticks[-1] != range_end:
        ticks.append(range_end)
    return ticks


def format_time_tick(value: int, tz: Optional[tzinfo] = None) -> str:
    """Render a tick as H:MM."""
    moment = datetime.fromtimestamp(value / 1000, tz=tz)
    return f"{moment.hour}:{moment.minute:02d}"
