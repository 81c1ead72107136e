"""
Series Formatter / Interpolator

Projects every series onto the reconciled timeline, producing one
row per timeline timestamp:

    {"created_at": t, "offline_marker": 1 | None,
     "<monitor>": delay | None, "<monitor>_packet_loss": loss | None, ...}

Offline points are null for every monitor. Exact samples are copied.
Other points are linearly interpolated between the surrounding valid
samples when those are at most 1.5 sample intervals apart, and null
otherwise. Packet loss is never interpolated.
"""

from typing import Any, Optional, Sequence

from ..config import settings
from ..schemas import (
    OFFLINE_KEY,
    PACKET_LOSS_SUFFIX,
    MonitorSeries,
    MonitorSummary,
    SampleState,
    TimelineData,
)
from ..analysis.packet_loss import packet_loss_for

Row = dict[str, Any]


def sample_state(values: dict[int, Optional[float]], timestamp: int) -> SampleState:
    if timestamp not in values:
        return SampleState.NOT_SAMPLED
    if values[timestamp] is None:
        return SampleState.LOST
    return SampleState.OBSERVED


def interpolate(
    prev_point: Optional[tuple[int, float]],
    next_point: Optional[tuple[int, float]],
    timestamp: int,
    max_gap: float,
) -> Optional[float]:
    """Linear interpolation between two valid samples, None if the gap is too wide."""
    if prev_point is None or next_point is None:
        return None
    (t0, v0), (t1, v1) = prev_point, next_point
    if max_gap <= 0 or t1 - t0 > max_gap:
        return None
    ratio = (timestamp - t0) / (t1 - t0)
    return v0 + ratio * (v1 - v0)


def _empty_row(timestamp: int, timeline: TimelineData) -> Row:
    return {
        "created_at": timestamp,
        OFFLINE_KEY: 1 if timeline.is_offline(timestamp) else None,
    }


def _project_series(
    rows: dict[int, Row],
    series: MonitorSeries,
    timeline: TimelineData,
    packet_loss: Optional[Sequence[float]],
    gap_multiplier: float,
) -> None:
    name = series.monitor_name
    loss_key = f"{name}{PACKET_LOSS_SUFFIX}"
    values: dict[int, Optional[float]] = {}
    losses: dict[int, float] = {}
    valid_points: list[tuple[int, float]] = []

    for index, timestamp in enumerate(series.created_at):
        delay = series.avg_delay[index]
        values[timestamp] = delay
        if packet_loss:
            losses[timestamp] = packet_loss[index]
        if delay is not None:
            valid_points.append((timestamp, delay))

    max_gap = timeline.interval_ms * gap_multiplier
    next_index = 0
    prev_point: Optional[tuple[int, float]] = None

    for timestamp in timeline.timeline:
        row = rows[timestamp]

        if row[OFFLINE_KEY] is not None:
            row[name] = None
            if packet_loss:
                row[loss_key] = None
            continue

        if sample_state(values, timestamp) != SampleState.NOT_SAMPLED:
            row[name] = values[timestamp]
            if packet_loss:
                row[loss_key] = losses.get(timestamp)
            continue

        while next_index < len(valid_points) and valid_points[next_index][0] < timestamp:
            prev_point = valid_points[next_index]
            next_index += 1
        next_point = valid_points[next_index] if next_index < len(valid_points) else None

        row[name] = interpolate(prev_point, next_point, timestamp, max_gap)
        if packet_loss:
            row[loss_key] = None


def format_series(
    series_list: Sequence[MonitorSeries],
    timeline: TimelineData,
    packet_losses: Optional[dict[int, list[float]]] = None,
    gap_multiplier: Optional[float] = None,
) -> list[Row]:
    """
    Build chart rows for all series over a reconciled timeline.

    Args:
        series_list: Assembled series
        timeline: Output of the timeline reconciler
        packet_losses: Precomputed loss per series, keyed by position in
            series_list (computed on demand when missing)
        gap_multiplier: Max bounding gap for interpolation, in intervals

    Returns:
        Rows sorted ascending by created_at
    """
    multiplier = gap_multiplier if gap_multiplier is not None else settings.offline_gap_multiplier
    rows: dict[int, Row] = {t: _empty_row(t, timeline) for t in timeline.timeline}

    for position, series in enumerate(series_list):
        if packet_losses is not None and position in packet_losses:
            loss = packet_losses[position]
        else:
            loss = packet_loss_for(series)
        _project_series(rows, series, timeline, loss, multiplier)

    return [rows[t] for t in sorted(rows)]


def chart_view(rows: Sequence[Row], monitor_name: str) -> list[Row]:
    """Project rows onto a single monitor: avg_delay, packet_loss and offline columns."""
    return [
        {
            "created_at": row["created_at"],
            "avg_delay": row.get(monitor_name),
            "packet_loss": row.get(f"{monitor_name}{PACKET_LOSS_SUFFIX}"),
            OFFLINE_KEY: row.get(OFFLINE_KEY),
        }
        for row in rows
    ]


def summarize(
    series_list: Sequence[MonitorSeries],
    packet_losses: Optional[dict[int, list[float]]] = None,
) -> list[MonitorSummary]:
    """Headline numbers per monitor: last valid delay and mean packet loss."""
    summaries = []
    for position, series in enumerate(series_list):
        last_delay = next((d for d in reversed(series.avg_delay) if d is not None), 0.0)
        if packet_losses is not None and position in packet_losses:
            loss = packet_losses[position]
        else:
            loss = packet_loss_for(series)
        summaries.append(
            MonitorSummary(
                monitor_name=series.monitor_name,
                last_delay=last_delay,
                avg_packet_loss=sum(loss) / len(loss) if loss else None,
            )
        )
    return summaries
