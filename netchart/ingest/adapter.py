"""
Raw Record Adapter

Normalizes the ping payloads returned by the monitoring backend into
one MonitorSeries per task. Three payload shapes are accepted and
detected in priority order; anything else yields an empty result.

A record is kept only when its timestamp and its value both parse.
A value of -1 is kept as a null delay (ping sent, response lost),
which is different from a dropped record (no data at all).
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from ..schemas import MonitorSeries, PayloadShape, RawRecord, TaskInfo
from ..schemas.records import LOST_SENTINEL
from ..utils.logger import get_logger

logger = get_logger("netchart.ingest")


def detect_shape(payload: Any) -> PayloadShape:
    """Resolve which accepted shape a payload has, first match wins."""
    if isinstance(payload, dict):
        tasks = payload.get("tasks")
        records = payload.get("records")
        if isinstance(tasks, list) and isinstance(records, list):
            return PayloadShape.TASKS_AND_RECORDS
        if isinstance(records, list):
            return PayloadShape.RECORDS_ONLY
        return PayloadShape.UNKNOWN
    if isinstance(payload, list):
        return PayloadShape.RECORD_ARRAY
    return PayloadShape.UNKNOWN


def extract_reported_range(payload: Any) -> tuple[Optional[str], Optional[str]]:
    """Return the (from, to) range strings the backend reported, if any."""
    if not isinstance(payload, dict):
        return None, None
    start = payload.get("from")
    end = payload.get("to")
    return (
        start if isinstance(start, str) else None,
        end if isinstance(end, str) else None,
    )


@dataclass
class _SeriesBuilder:
    monitor_id: int
    monitor_name: str
    created_at: list[int] = field(default_factory=list)
    avg_delay: list[Optional[float]] = field(default_factory=list)


class RecordAdapter:
    """
    Accumulates records into per-task series for one server.

    Series keep the order in which their task was first seen, so the
    task list order wins over record order when both are present.
    """

    def __init__(self, server_id: int, server_name: str = ""):
        self.server_id = server_id
        self.server_name = server_name or str(server_id)
        self._series: dict[int, _SeriesBuilder] = {}
        self.dropped = 0

    def ensure_series(self, task_id: int, name: Optional[str] = None) -> _SeriesBuilder:
        builder = self._series.get(task_id)
        if builder is None:
            builder = _SeriesBuilder(
                monitor_id=task_id,
                monitor_name=name or f"task_{task_id}",
            )
            self._series[task_id] = builder
        return builder

    def add_task(self, raw: Any) -> None:
        try:
            task = TaskInfo.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed task entry: %r", raw)
            return
        self.ensure_series(task.id, task.name)

    def append(self, raw: Any) -> bool:
        """
        Append one raw record.

        Returns:
            True if the record was kept, False if it was dropped
        """
        if not isinstance(raw, dict):
            self.dropped += 1
            return False

        record = RawRecord.model_validate(raw)
        builder = self.ensure_series(record.resolved_task_id, record.display_name)

        timestamp = record.timestamp_ms()
        if timestamp is None:
            self.dropped += 1
            return False
        value = record.delay()
        if value is None:
            self.dropped += 1
            return False

        builder.created_at.append(timestamp)
        builder.avg_delay.append(None if value == LOST_SENTINEL else value)
        return True

    def build(self) -> list[MonitorSeries]:
        return [
            MonitorSeries(
                monitor_id=builder.monitor_id,
                monitor_name=builder.monitor_name,
                server_id=self.server_id,
                server_name=self.server_name,
                created_at=builder.created_at,
                avg_delay=builder.avg_delay,
            )
            for builder in self._series.values()
        ]


@dataclass
class AdaptResult:
    series: list[MonitorSeries]
    shape: PayloadShape
    dropped: int = 0


def adapt(payload: Any, server_id: int, server_name: str = "") -> AdaptResult:
    """
    Convert an upstream ping payload into unsorted per-task series.

    Args:
        payload: Decoded upstream response (already checked for "error")
        server_id: Server the records belong to
        server_name: Server display name

    Returns:
        AdaptResult with one MonitorSeries per task (empty for an
        unrecognized payload), the detected shape and the drop count
    """
    shape = detect_shape(payload)
    adapter = RecordAdapter(server_id, server_name)

    if shape == PayloadShape.TASKS_AND_RECORDS:
        for task in payload["tasks"]:
            adapter.add_task(task)
        records = payload["records"]
    elif shape == PayloadShape.RECORDS_ONLY:
        records = payload["records"]
    elif shape == PayloadShape.RECORD_ARRAY:
        records = payload
    else:
        logger.debug("Unrecognized payload shape for server %s", server_id)
        return AdaptResult(series=[], shape=shape)

    for record in records:
        adapter.append(record)

    if adapter.dropped:
        logger.debug(
            "Dropped %d unparseable records for server %s",
            adapter.dropped,
            server_id,
        )

    return AdaptResult(series=adapter.build(), shape=shape, dropped=adapter.dropped)


def adapt_payload(payload: Any, server_id: int, server_name: str = "") -> list[MonitorSeries]:
    """Convert an upstream ping payload into unsorted per-task series."""
    return adapt(payload, server_id, server_name).series
