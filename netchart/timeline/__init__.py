# Timeline reconciliation, display ranges and axis ticks
from .range import build_range_options, format_range_label, is_realtime, resolve_time_range
from .reconciler import build_offline_points, build_offline_spans, build_timeline, typical_interval_ms
from .ticks import build_time_ticks, format_time_tick

__all__ = [
    "build_range_options",
    "format_range_label",
    "is_realtime",
    "resolve_time_range",
    "build_offline_points",
    "build_offline_spans",
    "build_timeline",
    "typical_interval_ms",
    "build_time_ticks",
    "format_time_tick",
]
