# Ingest: upstream fetch, payload adaptation and series assembly
from .adapter import AdaptResult, RecordAdapter, adapt, adapt_payload, detect_shape, extract_reported_range
from .assembler import assemble_series, pad_empty, sort_series
from .client import TelemetryClient, UpstreamError, node_numeric_id, normalize_hours
from .load import extract_load_records, normalize_load_records

__all__ = [
    "AdaptResult",
    "RecordAdapter",
    "adapt",
    "adapt_payload",
    "detect_shape",
    "extract_reported_range",
    "assemble_series",
    "pad_empty",
    "sort_series",
    "TelemetryClient",
    "UpstreamError",
    "node_numeric_id",
    "normalize_hours",
    "extract_load_records",
    "normalize_load_records",
]
