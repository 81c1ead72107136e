# Chart row formatting and presentation filters
from .formatter import Row, chart_view, format_series, interpolate, summarize
from .peak_cut import peak_cut, robust_estimate, smooth_column

__all__ = [
    "Row",
    "chart_view",
    "format_series",
    "interpolate",
    "summarize",
    "peak_cut",
    "robust_estimate",
    "smooth_column",
]
