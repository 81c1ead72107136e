"""
Timeline Reconciler

Builds the shared x-axis for all series of a chart. Sampling drifts,
so there is no uniform grid: the timeline is every observed timestamp
in range plus synthetic points inside provable silences.

A silence is offline only when it exceeds 1.5x the typical sample
interval, so ordinary jitter never shows up as downtime.
"""

import math
from typing import Optional, Sequence

import numpy as np

from ..config import settings
from ..schemas import MonitorSeries, OfflineSpan, TimelineData


def typical_interval_ms(
    series: Sequence[MonitorSeries],
    default_ms: Optional[int] = None,
    min_ms: Optional[int] = None,
) -> int:
    """
    Estimate the typical sample spacing across all series.

    Median of all positive consecutive deltas, rounded to the nearest
    second and floored at `min_ms`. Falls back to `default_ms` when no
    positive delta exists.
    """
    default_ms = default_ms if default_ms is not None else settings.default_interval_ms
    min_ms = min_ms if min_ms is not None else settings.min_interval_ms

    deltas = [
        np.diff(np.asarray(item.created_at, dtype=np.float64))
        for item in series
        if len(item.created_at) > 1
    ]
    positive = np.concatenate(deltas) if deltas else np.array([])
    positive = positive[positive > 0]
    if positive.size == 0:
        return default_ms

    median = float(np.median(positive))
    rounded = math.floor(median / 1000 + 0.5) * 1000
    return int(max(min_ms, rounded))


def build_offline_spans(
    observed_times: Sequence[int],
    range_start: float,
    range_end: float,
    interval_ms: int,
    gap_multiplier: Optional[float] = None,
) -> list[OfflineSpan]:
    """
    Detect offline spans in a sorted sequence of observed timestamps.

    Returns an empty list for a degenerate range or interval. With no
    observation the whole range is one span.
    """
    if (
        not math.isfinite(range_start)
        or not math.isfinite(range_end)
        or range_start >= range_end
        or interval_ms <= 0
    ):
        return []

    if not observed_times:
        return [OfflineSpan(start=int(range_start), end=int(range_end))]

    multiplier = gap_multiplier if gap_multiplier is not None else settings.offline_gap_multiplier
    threshold = interval_ms * multiplier
    times = sorted(observed_times)
    spans: list[OfflineSpan] = []

    first = times[0]
    if first - range_start > threshold:
        spans.append(OfflineSpan(start=int(range_start), end=first))

    for prev, nxt in zip(times, times[1:]):
        if nxt - prev > threshold:
            span_start = prev + interval_ms
            span_end = min(nxt, int(range_end))
            if span_start < span_end:
                spans.append(OfflineSpan(start=span_start, end=span_end))

    last = times[-1]
    if range_end - last > threshold:
        span_start = last + interval_ms
        if span_start < range_end:
            spans.append(OfflineSpan(start=span_start, end=int(range_end)))

    return spans


def build_offline_points(spans: Sequence[OfflineSpan], interval_ms: int) -> list[int]:
    """Materialize spans as points `interval_ms` apart, half-open at the end."""
    if interval_ms <= 0:
        return []
    points: list[int] = []
    for span in spans:
        points.extend(range(span.start, span.end, interval_ms))
    return points


def build_timeline(
    series: Sequence[MonitorSeries],
    range_start: int,
    range_end: int,
    interval_ms: Optional[int] = None,
) -> TimelineData:
    """
    Reconcile all series onto one timeline for [range_start, range_end].

    Args:
        series: Assembled series
        range_start: Display range start (epoch ms, inclusive)
        range_end: Display range end (epoch ms, inclusive)
        interval_ms: Override of the estimated sample interval

    Returns:
        TimelineData with the merged timeline, the offline spans, the
        set of observed timestamps and the sample interval
    """
    observed = frozenset(
        t
        for item in series
        for t in item.created_at
        if range_start <= t <= range_end
    )
    observed_times = sorted(observed)
    interval = interval_ms if interval_ms is not None else typical_interval_ms(series)
    spans = build_offline_spans(observed_times, range_start, range_end, interval)
    points = build_offline_points(spans, interval)

    timeline = sorted(observed.union(points))
    return TimelineData(
        timeline=timeline,
        offline_spans=spans,
        observed_set=observed,
        interval_ms=interval,
    )
