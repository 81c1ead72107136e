"""
Monitor Series Schemas

Defines the per-task latency series produced by the adapter and
consumed by the reconciler, estimator and formatter, plus the
response envelopes returned to the rendering layer.
"""

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Column holding the offline marker in formatted rows
OFFLINE_KEY = "offline_marker"

# Suffix of the per-monitor packet-loss column in formatted rows
PACKET_LOSS_SUFFIX = "_packet_loss"


class SampleState(str, Enum):
    """
    State of a series at a given timestamp.

    - OBSERVED: ping answered, a delay value exists
    - LOST: ping sent, response lost (stored as a null delay)
    - NOT_SAMPLED: the series has no sample at this timestamp
    """
    OBSERVED = "observed"
    LOST = "lost"
    NOT_SAMPLED = "not_sampled"


class MonitorSeries(BaseModel):
    """
    Time series of one ping task on one server.

    created_at and avg_delay are parallel sequences. After assembly
    they are sorted ascending by timestamp.
    """
    model_config = ConfigDict(frozen=True)

    monitor_id: int = Field(..., description="Stable task identifier")
    monitor_name: str = Field(..., description="Display label")
    server_id: int = Field(..., description="Server identifier")
    server_name: str = Field(default="", description="Server display name")
    created_at: list[int] = Field(
        default_factory=list,
        description="Sample timestamps in epoch milliseconds",
    )
    avg_delay: list[Optional[float]] = Field(
        default_factory=list,
        description="Delay per sample in ms, null for a lost ping",
    )
    packet_loss: Optional[list[float]] = Field(
        default=None,
        description="Upstream-provided packet loss per sample (optional)",
    )

    @model_validator(mode="after")
    def _check_parallel(self) -> "MonitorSeries":
        if len(self.created_at) != len(self.avg_delay):
            raise ValueError("created_at and avg_delay must have the same length")
        if self.packet_loss is not None and len(self.packet_loss) != len(self.created_at):
            raise ValueError("packet_loss must be parallel to created_at")
        return self


class MonitorResponse(BaseModel):
    """
    Envelope returned by the adapter/assembler stage.

    range_from/range_to carry the range the backend reports for the
    query, when it reports one.
    """
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: list[MonitorSeries] = Field(default_factory=list)
    range_from: Optional[str] = Field(default=None, alias="from")
    range_to: Optional[str] = Field(default=None, alias="to")


class MonitorSummary(BaseModel):
    """Per-monitor headline numbers shown next to the chart."""
    monitor_name: str
    last_delay: float = Field(
        default=0.0,
        description="Most recent non-null delay (0 when none)",
    )
    avg_packet_loss: Optional[float] = Field(
        default=None,
        description="Mean packet loss over all samples",
    )


class TimeRange(BaseModel):
    """Display range in epoch milliseconds."""
    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    source: Literal["reported", "observed", "requested"] = Field(
        default="requested",
        description="Which derivation strategy produced the range",
    )

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.start >= self.end:
            raise ValueError("TimeRange start must be before end")
        return self


class RangeOption(BaseModel):
    """A selectable display range; value is hours or 'realtime'."""
    value: Union[int, Literal["realtime"]]
    label: str
