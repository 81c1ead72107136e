"""
Upstream Record Schemas

The monitoring backend returns ping telemetry in several shapes and
individual records are frequently malformed. These models accept any
field content and expose parsing helpers that report failure as None
instead of raising, so a single bad record never aborts a fetch.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Delay value the backend reports for a ping whose response was lost
LOST_SENTINEL = -1


class PayloadShape(str, Enum):
    """
    Accepted upstream payload shapes, in detection priority order.

    - TASKS_AND_RECORDS: {"tasks": [...], "records": [...]}
    - RECORDS_ONLY: {"records": [...]}
    - RECORD_ARRAY: [...] (the payload is the record list)
    - UNKNOWN: anything else, adapted to an empty result
    """
    TASKS_AND_RECORDS = "tasks_and_records"
    RECORDS_ONLY = "records_only"
    RECORD_ARRAY = "record_array"
    UNKNOWN = "unknown"


def parse_timestamp_ms(raw: Any) -> Optional[int]:
    """
    Parse an ISO-8601 timestamp string into epoch milliseconds.

    Naive timestamps are interpreted as UTC.

    Returns:
        Epoch milliseconds, or None if the value is not a parseable string
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(round(parsed.timestamp() * 1000))


def parse_number(raw: Any) -> Optional[float]:
    """
    Coerce a delay value to a finite float.

    Follows the backend clients' JavaScript coercion: null and blank
    strings count as 0 and booleans as 0/1. Non-numeric strings,
    containers and non-finite results are rejected.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 0.0
    elif not isinstance(raw, (int, float)):
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


class TaskInfo(BaseModel):
    """A ping task declared by the backend, seeding one series."""
    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Task identifier")
    name: Optional[str] = Field(default=None, description="Display name")


class RawRecord(BaseModel):
    """
    A single upstream observation.

    Every field is optional and loosely typed; use the accessor
    methods to get parsed values.
    """
    model_config = ConfigDict(extra="ignore")

    task_id: Any = Field(default=None, description="Task identifier (defaults to 0)")
    time: Any = Field(default=None, description="Observation timestamp string")
    value: Any = Field(default=None, description="Delay in ms, -1 for a lost ping")
    name: Any = Field(default=None, description="Task display name")

    @property
    def resolved_task_id(self) -> int:
        if isinstance(self.task_id, int) and not isinstance(self.task_id, bool):
            return self.task_id
        return 0

    @property
    def display_name(self) -> Optional[str]:
        return self.name if isinstance(self.name, str) else None

    def timestamp_ms(self) -> Optional[int]:
        return parse_timestamp_ms(self.time)

    def delay(self) -> Optional[float]:
        """Parsed delay, None when the record has no value field at all."""
        if "value" not in self.model_fields_set:
            return None
        return parse_number(self.value)
