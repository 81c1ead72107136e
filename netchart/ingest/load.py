"""
Load Record Normalization

The backend answers a load query with either a record list or a map
of record lists keyed by node identifier. Only records whose
timestamp parses are kept; metric values are coerced to numbers.
"""

from typing import Any

from ..schemas.load import LOAD_METRICS, LoadSample
from ..schemas.records import parse_number, parse_timestamp_ms
from ..utils.logger import get_logger

logger = get_logger("netchart.ingest")


def extract_load_records(payload: Any, node_id: str) -> list:
    """Return the raw load record list for a node from a getRecords result."""
    if not isinstance(payload, dict):
        return []
    records = payload.get("records")
    if isinstance(records, list):
        return records
    if isinstance(records, dict):
        node_records = records.get(node_id)
        return node_records if isinstance(node_records, list) else []
    return []


def _metric(raw: Any) -> float:
    value = parse_number(raw)
    return value if value is not None else 0.0


def normalize_load_records(records: list) -> list[LoadSample]:
    """
    Convert raw load records into samples sorted by time.

    Records that are not objects or whose timestamp does not parse are
    dropped. The sort is stable for equal timestamps.
    """
    samples: list[LoadSample] = []
    dropped = 0
    for raw in records:
        timestamp = parse_timestamp_ms(raw.get("time")) if isinstance(raw, dict) else None
        if timestamp is None:
            dropped += 1
            continue
        samples.append(
            LoadSample(
                created_at=timestamp,
                **{name: _metric(raw.get(name)) for name in LOAD_METRICS},
            )
        )

    if dropped:
        logger.debug("Dropped %d load records without a valid timestamp", dropped)
    return sorted(samples, key=lambda sample: sample.created_at)
