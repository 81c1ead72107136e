# Data schemas for netchart
from .records import RawRecord, TaskInfo, PayloadShape
from .monitors import (
    OFFLINE_KEY,
    PACKET_LOSS_SUFFIX,
    SampleState,
    MonitorSeries,
    MonitorResponse,
    MonitorSummary,
    TimeRange,
    RangeOption,
)
from .timeline import OfflineSpan, TimelineData
from .load import LoadSample, LoadResponse

__all__ = [
    # Records
    "RawRecord",
    "TaskInfo",
    "PayloadShape",
    # Monitors
    "OFFLINE_KEY",
    "PACKET_LOSS_SUFFIX",
    "SampleState",
    "MonitorSeries",
    "MonitorResponse",
    "MonitorSummary",
    "TimeRange",
    "RangeOption",
    # Timeline
    "OfflineSpan",
    "TimelineData",
    # Load
    "LoadSample",
    "LoadResponse",
]
