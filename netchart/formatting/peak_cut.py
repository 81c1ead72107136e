"""
Peak-Cut Filter

Optional presentation transform that suppresses latency outliers.
For each full sliding window of formatted rows, values far from the
window median (by a normal-consistent MAD) are rejected, the
survivors are EWMA-smoothed, and the window estimates are blended
into one running EWMA per column.

Rows before the first full window pass through unchanged. A null
value stays null: the filter only replaces values that exist.
"""

from itertools import accumulate
from typing import Optional, Sequence

import numpy as np

from ..config import settings
from .formatter import Row

MAD_SCALE = 1.4826
MAD_REJECT_FACTOR = 3.0
MEDIAN_REJECT_FACTOR = 3.0


def robust_estimate(values: Sequence[float], alpha: float) -> Optional[float]:
    """
    Outlier-resistant estimate of one window.

    Returns:
        EWMA of the surviving values in window order, the median when
        every value is rejected, or None for an empty window
    """
    if not values:
        return None

    data = np.asarray(values, dtype=np.float64)
    median = float(np.median(data))
    mad = float(np.median(np.abs(data - median))) * MAD_SCALE

    keep = (np.abs(data - median) <= MAD_REJECT_FACTOR * mad) & (data <= median * MEDIAN_REJECT_FACTOR)
    survivors = data[keep]
    if survivors.size == 0:
        return median

    ewma = float(survivors[0])
    for value in survivors[1:]:
        ewma = alpha * float(value) + (1 - alpha) * ewma
    return ewma


def _blend(alpha: float):
    def step(state: Optional[float], estimate: Optional[float]) -> Optional[float]:
        if estimate is None:
            return state
        if state is None:
            return estimate
        return alpha * estimate + (1 - alpha) * state
    return step


def smooth_column(
    column: Sequence[Optional[float]],
    window: int,
    alpha: float,
) -> list[Optional[float]]:
    """
    Peak-cut one column of values.

    The running EWMA is threaded through the windows as an explicit
    accumulator, so each call starts from a clean state.
    """
    if len(column) < window:
        return list(column)

    estimates = [
        robust_estimate([v for v in column[end - window + 1:end + 1] if v is not None], alpha)
        for end in range(window - 1, len(column))
    ]
    states = list(accumulate(estimates, _blend(alpha), initial=None))[1:]

    smoothed = list(column[:window - 1])
    for offset, (estimate, state) in enumerate(zip(estimates, states)):
        original = column[window - 1 + offset]
        if estimate is None or original is None:
            smoothed.append(original)
        else:
            smoothed.append(state)
    return smoothed


def peak_cut(
    rows: Sequence[Row],
    keys: Sequence[str],
    window: Optional[int] = None,
    alpha: Optional[float] = None,
) -> list[Row]:
    """
    Apply the peak-cut filter to the given columns of formatted rows.

    Args:
        rows: Formatter output (or a single-monitor chart view)
        keys: Columns to smooth, each independently
        window: Sliding window size (default from settings)
        alpha: EWMA smoothing factor (default from settings)

    Returns:
        New rows; the input rows are not modified
    """
    window = window or settings.peak_cut_window
    alpha = alpha if alpha is not None else settings.peak_cut_alpha

    result = [dict(row) for row in rows]
    for key in keys:
        column = [row.get(key) for row in rows]
        for row, value in zip(result, smooth_column(column, window, alpha)):
            if key in row:
                row[key] = value
    return result
