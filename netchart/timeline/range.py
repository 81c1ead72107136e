"""
Display Range Resolution

Derives the chart's time range and the list of selectable ranges.
The range is taken, in priority order, from the backend's reported
range, from the observed sample timestamps, or from "now minus the
requested hours".
"""

import math
import time
from typing import Optional, Sequence

from ..schemas import MonitorSeries, RangeOption, TimeRange
from ..schemas.records import parse_timestamp_ms

HOUR_MS = 60 * 60 * 1000

REALTIME = "realtime"


def is_realtime(range_hours: float) -> bool:
    """Ranges of one hour or less are served as a live view."""
    return range_hours <= 1


def _is_finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def resolve_time_range(
    series: Sequence[MonitorSeries],
    range_hours: float,
    reported_from: Optional[str] = None,
    reported_to: Optional[str] = None,
    now: Optional[int] = None,
) -> TimeRange:
    """
    Resolve the display range for a chart.

    Args:
        series: Assembled series
        range_hours: Hours requested by the caller
        reported_from: Range start reported by the backend (optional)
        reported_to: Range end reported by the backend (optional)
        now: Current time in epoch ms (defaults to the wall clock)

    Returns:
        A valid TimeRange (start < end)
    """
    start: Optional[float] = parse_timestamp_ms(reported_from)
    end: Optional[float] = parse_timestamp_ms(reported_to)

    if _is_finite(start) and _is_finite(end) and start < end:
        return TimeRange(start=int(start), end=int(end), source="reported")

    # Fill whichever end is missing from the observed samples
    timestamps = [t for item in series for t in item.created_at]
    if timestamps:
        if not _is_finite(start):
            start = min(timestamps)
        if not _is_finite(end):
            end = max(timestamps)

    if _is_finite(start) and _is_finite(end) and start < end:
        return TimeRange(start=int(start), end=int(end), source="observed")

    safe_hours = max(1, math.floor(range_hours)) if _is_finite(range_hours) else 1
    end_ms = now if now is not None else int(time.time() * 1000)
    return TimeRange(start=end_ms - safe_hours * HOUR_MS, end=end_ms, source="requested")


def format_range_label(hours: int) -> str:
    if hours % 24 == 0:
        return f"{hours // 24}d"
    return f"{hours}h"


def build_range_options(
    max_hours: Optional[float],
    preset_hours: Sequence[int],
    realtime_label: str = "Realtime",
    hide_max_when_below_or_equal: Optional[int] = None,
) -> list[RangeOption]:
    """
    Build the selectable ranges for a chart.

    The list always starts with the realtime view, followed by the
    presets that fit the retention and finally the retention itself
    when it is not one of the presets.

    Args:
        max_hours: Record retention in hours (None or invalid falls back
            to the largest preset)
        preset_hours: Canonical preset buckets
        realtime_label: Label of the realtime option
        hide_max_when_below_or_equal: Only offer realtime when the
            retention is at or below this many hours
    """
    base_max = max(preset_hours) if preset_hours else 24
    if _is_finite(max_hours) and max_hours > 0:
        safe_max = math.floor(max_hours)
    else:
        safe_max = base_max

    options = [RangeOption(value=REALTIME, label=realtime_label)]
    if hide_max_when_below_or_equal is not None and safe_max <= hide_max_when_below_or_equal:
        return options

    fitting = [hours for hours in preset_hours if hours <= safe_max]
    options.extend(RangeOption(value=hours, label=format_range_label(hours)) for hours in fitting)
    if safe_max not in fitting:
        options.append(RangeOption(value=safe_max, label=format_range_label(safe_max)))
    return options
