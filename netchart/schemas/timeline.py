"""
Timeline Schemas

Value objects produced by the timeline reconciler.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OfflineSpan:
    """Half-open period [start, end) with no sample from any series."""
    start: int
    end: int

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class TimelineData:
    """Canonical x-axis domain shared by all series of one chart."""
    timeline: list[int] = field(default_factory=list)
    offline_spans: list[OfflineSpan] = field(default_factory=list)
    observed_set: frozenset[int] = field(default_factory=frozenset)
    interval_ms: int = 60_000

    def is_offline(self, timestamp: int) -> bool:
        """True for a timeline point synthesized inside an offline span."""
        return timestamp not in self.observed_set

    def to_dict(self) -> dict:
        return {
            "timeline": list(self.timeline),
            "offline_spans": [span.to_dict() for span in self.offline_spans],
            "observed": sorted(self.observed_set),
            "interval_ms": self.interval_ms,
        }
