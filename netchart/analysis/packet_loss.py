"""
Packet-Loss Estimator

Derives a 0-100 packet-loss percentage per sample from delay values
alone, for backends that report no loss signal. This is a
deterministic heuristic, not a measurement:

- No response (null or 0 delay) counts as full loss
- Extreme delays (>= 10s) and timeout-adjacent delays (>= 3s) map
  linearly onto capped loss ranges
- Otherwise loss grows with the local delay jitter (coefficient of
  variation over a centered window) and with spikes above the local
  mean
- The per-sample estimate is smoothed with a causal EWMA
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

import numpy as np

from ..schemas import MonitorSeries

TIMEOUT_THRESHOLD_MS = 3000
EXTREME_DELAY_THRESHOLD_MS = 10000

# Caps for the delay-based branches
EXTREME_LOSS_BASE = 60.0
EXTREME_LOSS_CAP = 95.0
TIMEOUT_LOSS_CAP = 50.0

# (coefficient of variation above, multiplier, cap), checked in order
JITTER_BANDS = (
    (0.8, 15.0, 25.0),
    (0.5, 8.0, 10.0),
    (0.3, 5.0, 5.0),
)

SPIKE_RATIO = 2.5
SPIKE_MULTIPLIER = 10.0
SPIKE_CAP = 15.0

SMOOTHING_ALPHA = 0.3

MIN_WINDOW = 3
MAX_WINDOW = 10


def window_size(length: int) -> int:
    return min(MAX_WINDOW, max(MIN_WINDOW, length // 10))


def round2(value: float) -> float:
    """Round half-up to two decimals on the exact binary value."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _jitter_loss(delay: float, window: Sequence[Optional[float]]) -> float:
    valid = np.array([d for d in window if d is not None and d > 0], dtype=np.float64)
    if valid.size <= 2:
        return 0.0

    mean = float(valid.mean())
    cov = float(np.sqrt(valid.var())) / mean

    loss = 0.0
    for floor, multiplier, cap in JITTER_BANDS:
        if cov > floor:
            loss = min(cap, cov * multiplier)
            break

    if delay > mean * SPIKE_RATIO:
        loss += min(SPIKE_CAP, (delay / mean - SPIKE_RATIO) * SPIKE_MULTIPLIER)
    return loss


def raw_loss(delays: Sequence[Optional[float]], index: int, size: Optional[int] = None) -> float:
    """Unsmoothed loss estimate for one sample."""
    delay = delays[index]
    if delay is None or delay == 0:
        return 100.0
    if delay >= EXTREME_DELAY_THRESHOLD_MS:
        return min(EXTREME_LOSS_CAP, EXTREME_LOSS_BASE + (delay - EXTREME_DELAY_THRESHOLD_MS) / 1000)
    if delay >= TIMEOUT_THRESHOLD_MS:
        return min(TIMEOUT_LOSS_CAP, (delay - TIMEOUT_THRESHOLD_MS) / 200)

    size = size if size is not None else window_size(len(delays))
    start = max(0, index - size // 2)
    end = min(len(delays), index + (size + 1) // 2)
    return _jitter_loss(delay, delays[start:end])


def calculate_packet_loss(delays: Sequence[Optional[float]]) -> list[float]:
    """
    Estimate packet loss for every sample of a delay sequence.

    Args:
        delays: Delay values in ms, None for a lost ping

    Returns:
        Loss percentages in [0, 100], rounded to two decimals
    """
    if not delays:
        return []

    size = window_size(len(delays))
    rates: list[float] = []
    for index in range(len(delays)):
        loss = raw_loss(delays, index, size)
        if index > 0:
            loss = SMOOTHING_ALPHA * loss + (1 - SMOOTHING_ALPHA) * rates[index - 1]
        rates.append(max(0.0, min(100.0, loss)))

    return [round2(rate) for rate in rates]


def packet_loss_for(series: MonitorSeries) -> list[float]:
    """Upstream-provided packet loss when present, else the estimate."""
    if series.packet_loss:
        return list(series.packet_loss)
    return calculate_packet_loss(series.avg_delay)
