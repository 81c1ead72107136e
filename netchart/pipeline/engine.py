"""
Chart Pipeline

Orchestrates the stages that turn one upstream fetch into chart rows:

    fetch -> adapt -> assemble -> {reconcile, estimate} -> format -> peak cut

Reconciliation and packet-loss estimation do not depend on each other
and run concurrently. Every stage is a pure function of its inputs,
so nothing is shared between invocations.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..config import settings
from ..ingest import (
    TelemetryClient,
    UpstreamError,
    adapt,
    assemble_series,
    extract_load_records,
    extract_reported_range,
    normalize_hours,
    normalize_load_records,
)
from ..analysis import packet_loss_for
from ..formatting import Row, chart_view, format_series, peak_cut, summarize
from ..metrics import metrics, telemetry
from ..schemas import LoadResponse, MonitorResponse, MonitorSeries, MonitorSummary, TimeRange, TimelineData
from ..timeline import build_time_ticks, build_timeline, is_realtime, resolve_time_range
from ..utils.logger import get_logger

logger = get_logger("netchart.pipeline")


@dataclass
class ChartResult:
    """
    Everything the rendering layer needs for one chart.

    rows is the formatter output, projected onto a single monitor when
    exactly one is selected and peak-cut when the filter is enabled.
    """
    server_id: int
    server_name: str
    time_range: TimeRange
    timeline: TimelineData
    rows: list[Row] = field(default_factory=list)
    raw_rows: list[Row] = field(default_factory=list)
    monitors: list[str] = field(default_factory=list)
    summaries: list[MonitorSummary] = field(default_factory=list)
    ticks: list[int] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)
    peak_cut: bool = False
    realtime: bool = False

    @property
    def has_offline(self) -> bool:
        return bool(self.timeline.offline_spans)

    def to_dict(self) -> dict:
        return {
            "server_id": self.server_id,
            "server_name": self.server_name,
            "range": self.time_range.model_dump(),
            "interval_ms": self.timeline.interval_ms,
            "offline_spans": [span.to_dict() for span in self.timeline.offline_spans],
            "has_offline": self.has_offline,
            "monitors": self.monitors,
            "summaries": [summary.model_dump() for summary in self.summaries],
            "ticks": self.ticks,
            "selected": self.selected,
            "peak_cut": self.peak_cut,
            "realtime": self.realtime,
            "rows": self.rows,
        }


async def _reconcile(series: Sequence[MonitorSeries], time_range: TimeRange) -> TimelineData:
    return build_timeline(series, time_range.start, time_range.end)


async def _estimate(series: Sequence[MonitorSeries]) -> dict[int, list[float]]:
    return {position: packet_loss_for(item) for position, item in enumerate(series)}


async def build_chart(
    response: MonitorResponse,
    range_hours: float,
    peak_cut_enabled: bool = False,
    selected: Optional[Sequence[str]] = None,
    now: Optional[int] = None,
) -> ChartResult:
    """
    Build a chart from an assembled monitor response.

    Args:
        response: Output of the adapter/assembler stage
        range_hours: Requested display range in hours
        peak_cut_enabled: Apply the peak-cut filter to the rows
        selected: Monitor names selected in the UI (empty means all)
        now: Current time in epoch ms, for range fallback

    Returns:
        ChartResult
    """
    series = response.data
    monitors = list(dict.fromkeys(item.monitor_name for item in series))
    selected = list(dict.fromkeys(name for name in selected or [] if name in monitors))

    time_range = resolve_time_range(
        series,
        range_hours,
        reported_from=response.range_from,
        reported_to=response.range_to,
        now=now,
    )

    timeline, losses = await asyncio.gather(
        _reconcile(series, time_range),
        _estimate(series),
    )

    raw_rows = format_series(series, timeline, packet_losses=losses)

    if len(selected) == 1:
        rows = chart_view(raw_rows, selected[0])
        keys = ["avg_delay"]
    else:
        rows = raw_rows
        keys = selected or monitors

    if peak_cut_enabled:
        rows = peak_cut(rows, keys)

    return ChartResult(
        server_id=series[0].server_id if series else 0,
        server_name=series[0].server_name if series else "",
        time_range=time_range,
        timeline=timeline,
        rows=rows,
        raw_rows=raw_rows,
        monitors=monitors,
        summaries=summarize(series, losses),
        ticks=build_time_ticks(time_range.start, time_range.end),
        selected=selected,
        peak_cut=peak_cut_enabled,
        realtime=is_realtime(range_hours),
    )


class ChartPipeline:
    """
    Runs the full pipeline for a server against the upstream backend.

    Holds no per-query state; concurrent calls for different servers
    or ranges are independent.
    """

    def __init__(self, client: TelemetryClient):
        """
        Initialize pipeline.

        Args:
            client: Upstream telemetry client
        """
        self.client = client

    async def fetch_monitors(self, server_id: int, hours: float) -> MonitorResponse:
        """
        Fetch, adapt and assemble the ping series of a server.

        Raises:
            UpstreamError: when the backend call fails
        """
        try:
            node = await self.client.resolve_node(server_id)
            if node is None:
                metrics.fetch_total.labels(outcome="unknown_server").inc()
                return MonitorResponse(success=True, data=[])
            node_id, server_name = node
            payload = await self.client.fetch_ping_records(node_id, normalize_hours(hours))
        except UpstreamError:
            metrics.fetch_total.labels(outcome="error").inc()
            raise

        metrics.fetch_total.labels(outcome="ok").inc()
        result = adapt(payload, server_id, server_name)
        metrics.payload_shapes_total.labels(shape=result.shape.value).inc()
        if result.dropped:
            metrics.records_dropped_total.inc(result.dropped)

        range_from, range_to = extract_reported_range(payload)
        return MonitorResponse(
            success=True,
            data=assemble_series(result.series),
            range_from=range_from,
            range_to=range_to,
        )

    async def fetch_load(self, server_id: int, hours: float) -> LoadResponse:
        """
        Fetch the host load history of a server, sorted by time.

        Raises:
            UpstreamError: when the backend call fails
        """
        try:
            node = await self.client.resolve_node(server_id)
            if node is None:
                metrics.fetch_total.labels(outcome="unknown_server").inc()
                return LoadResponse(success=True, data=[])
            node_id, _ = node
            payload = await self.client.fetch_load_records(node_id, normalize_hours(hours))
        except UpstreamError:
            metrics.fetch_total.labels(outcome="error").inc()
            raise

        metrics.fetch_total.labels(outcome="ok").inc()
        records = extract_load_records(payload, node_id)
        samples = normalize_load_records(records)
        if len(samples) < len(records):
            metrics.records_dropped_total.inc(len(records) - len(samples))
        return LoadResponse(success=True, data=samples)

    async def run(
        self,
        server_id: int,
        range_hours: Optional[float] = None,
        peak_cut_enabled: bool = False,
        selected: Optional[Sequence[str]] = None,
    ) -> ChartResult:
        """
        Run the whole pipeline for one query.

        Raises:
            UpstreamError: when the backend call fails (no partial chart)
        """
        range_hours = range_hours if range_hours is not None else settings.default_range_hours
        start = time.perf_counter()
        try:
            response = await self.fetch_monitors(server_id, range_hours)
        except UpstreamError:
            telemetry.record("error", (time.perf_counter() - start) * 1000, server_id=server_id)
            raise

        transform_start = time.perf_counter()
        chart = await build_chart(
            response,
            range_hours,
            peak_cut_enabled=peak_cut_enabled,
            selected=selected,
        )
        elapsed_ms = (time.perf_counter() - start) * 1000

        metrics.transform_latency.observe((time.perf_counter() - transform_start) * 1000)
        metrics.pipeline_latency.observe(elapsed_ms)
        metrics.series_total.labels(server_id=str(server_id)).set(len(response.data))
        metrics.offline_spans.labels(server_id=str(server_id)).set(len(chart.timeline.offline_spans))
        telemetry.record(
            "ok",
            elapsed_ms,
            server_id=server_id,
            points=len(chart.rows),
            offline_spans=len(chart.timeline.offline_spans),
        )

        logger.debug(
            "Chart for server %s: %d series, %d rows, %d offline spans in %.1fms",
            server_id,
            len(response.data),
            len(chart.rows),
            len(chart.timeline.offline_spans),
            elapsed_ms,
        )
        return chart
