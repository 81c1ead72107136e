"""
Host Load Schemas

Normalized host load history (CPU, memory, disk, network, processes)
as served to the server detail charts.
"""

from pydantic import BaseModel, ConfigDict, Field


class LoadSample(BaseModel):
    """
    One host load record.

    Byte counters and rates are raw upstream units. Missing or
    unparseable metrics are 0.
    """
    model_config = ConfigDict(frozen=True)

    created_at: int = Field(..., description="Record timestamp in epoch milliseconds")
    cpu: float = Field(default=0.0, description="CPU usage in percent")
    gpu: float = Field(default=0.0, description="GPU usage in percent")
    ram: float = 0.0
    ram_total: float = 0.0
    swap: float = 0.0
    swap_total: float = 0.0
    load: float = Field(default=0.0, description="1-minute load average")
    disk: float = 0.0
    disk_total: float = 0.0
    net_in: float = Field(default=0.0, description="Inbound rate in bytes/s")
    net_out: float = Field(default=0.0, description="Outbound rate in bytes/s")
    net_total_up: float = 0.0
    net_total_down: float = 0.0
    process: float = 0.0
    connections: float = 0.0
    connections_udp: float = 0.0


LOAD_METRICS = tuple(name for name in LoadSample.model_fields if name != "created_at")


class LoadResponse(BaseModel):
    """Envelope of a server's load history, sorted ascending by time."""
    success: bool = True
    data: list[LoadSample] = Field(default_factory=list)
