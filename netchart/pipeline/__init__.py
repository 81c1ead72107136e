# Pipeline orchestration
from .engine import ChartPipeline, ChartResult, build_chart
from .realtime import ChartRegistry, RealtimePoller

__all__ = [
    "ChartPipeline",
    "ChartResult",
    "build_chart",
    "ChartRegistry",
    "RealtimePoller",
]
