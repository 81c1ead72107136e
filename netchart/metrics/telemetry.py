"""
In-memory telemetry of recent chart runs, served by /metrics/summary.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, UTC, timedelta
from statistics import mean
from typing import Deque, Optional


@dataclass(frozen=True)
class RunEvent:
    outcome: str
    latency_ms: float
    server_id: Optional[int] = None
    points: int = 0
    offline_spans: int = 0
    ts: datetime = field(default_factory=lambda: datetime.now(UTC))


def _p95(values: list[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    return ordered[int(round(0.95 * (len(ordered) - 1)))]


class PipelineTelemetry:
    """Ring buffer of recent pipeline runs."""

    def __init__(self, maxlen: int = 2000) -> None:
        self._events: Deque[RunEvent] = deque(maxlen=maxlen)

    def record(
        self,
        outcome: str,
        latency_ms: float,
        server_id: Optional[int] = None,
        points: int = 0,
        offline_spans: int = 0,
    ) -> None:
        self._events.append(
            RunEvent(
                outcome=outcome,
                latency_ms=latency_ms,
                server_id=server_id,
                points=points,
                offline_spans=offline_spans,
            )
        )

    def snapshot(self, hours: int = 24) -> dict:
        """
        Summarize the runs of the last `hours`.

        offline_ratio is the share of successful runs whose chart
        contained at least one offline span.
        """
        cutoff = datetime.now(UTC) - timedelta(hours=hours)
        events = [e for e in self._events if e.ts >= cutoff]
        ok = [e for e in events if e.outcome == "ok"]
        latencies = [e.latency_ms for e in events]

        return {
            "window_hours": hours,
            "counts": dict(Counter(e.outcome for e in events)),
            "servers": len({e.server_id for e in events if e.server_id is not None}),
            "avg_latency_ms": mean(latencies) if latencies else None,
            "p95_latency_ms": _p95(latencies),
            "avg_points": mean(e.points for e in ok) if ok else None,
            "offline_ratio": sum(1 for e in ok if e.offline_spans) / len(ok) if ok else None,
        }


telemetry = PipelineTelemetry()
