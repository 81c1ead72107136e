"""
Series Assembler

Sorts each adapted series by time and guarantees that no series is
empty, so downstream stages never branch on empty sequences.
"""

import time
from typing import Optional

from ..schemas import MonitorSeries


def now_ms() -> int:
    return int(time.time() * 1000)


def sort_series(series: MonitorSeries) -> MonitorSeries:
    """
    Return a copy of the series sorted ascending by timestamp.

    The sort is stable: samples sharing a timestamp keep their
    original relative order.
    """
    order = sorted(range(len(series.created_at)), key=series.created_at.__getitem__)
    update = {
        "created_at": [series.created_at[i] for i in order],
        "avg_delay": [series.avg_delay[i] for i in order],
    }
    if series.packet_loss is not None:
        update["packet_loss"] = [series.packet_loss[i] for i in order]
    return series.model_copy(update=update)


def pad_empty(series: MonitorSeries, timestamp: Optional[int] = None) -> MonitorSeries:
    """Replace an empty series with a single null sample at `timestamp` (default now)."""
    if series.created_at:
        return series
    return series.model_copy(
        update={
            "created_at": [timestamp if timestamp is not None else now_ms()],
            "avg_delay": [None],
            "packet_loss": None,
        }
    )


def assemble_series(
    series_list: list[MonitorSeries],
    now: Optional[int] = None,
) -> list[MonitorSeries]:
    """
    Sort every series and pad the empty ones.

    Args:
        series_list: Series as produced by the adapter
        now: Timestamp used for padding (defaults to the current time)

    Returns:
        New list of sorted, non-empty series in the same order
    """
    timestamp = now if now is not None else now_ms()
    return [pad_empty(sort_series(series), timestamp) for series in series_list]
