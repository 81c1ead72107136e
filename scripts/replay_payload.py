"""CLI for replaying a saved upstream payload through the chart pipeline."""

import argparse
import asyncio
import json
from pathlib import Path

from netchart.ingest import adapt, assemble_series, extract_reported_range
from netchart.pipeline import build_chart
from netchart.schemas import MonitorResponse
from netchart.timeline import format_time_tick


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build chart rows from a saved getRecords payload")
    parser.add_argument("payload", type=Path, help="JSON file with the RPC result")
    parser.add_argument("--server-id", type=int, default=0, help="Server id stamped on the series")
    parser.add_argument("--server-name", default="", help="Server name stamped on the series")
    parser.add_argument("--hours", type=float, default=24, help="Requested range in hours")
    parser.add_argument("--peak-cut", action="store_true", help="Apply the peak-cut filter")
    parser.add_argument("--select", action="append", default=[], help="Monitor to select (repeatable)")
    parser.add_argument("--summary", action="store_true", help="Print a short summary instead of rows")
    return parser.parse_args()


async def replay(args: argparse.Namespace) -> dict:
    payload = json.loads(args.payload.read_text())
    result = adapt(payload, args.server_id, args.server_name)
    range_from, range_to = extract_reported_range(payload)
    response = MonitorResponse(
        success=True,
        data=assemble_series(result.series),
        range_from=range_from,
        range_to=range_to,
    )
    chart = await build_chart(
        response,
        args.hours,
        peak_cut_enabled=args.peak_cut,
        selected=args.select,
    )

    if not args.summary:
        return chart.to_dict()
    return {
        "shape": result.shape.value,
        "dropped": result.dropped,
        "range": chart.time_range.model_dump(),
        "interval_ms": chart.timeline.interval_ms,
        "rows": len(chart.rows),
        "offline_spans": [
            f"{format_time_tick(span.start)}-{format_time_tick(span.end)}"
            for span in chart.timeline.offline_spans
        ],
        "summaries": [summary.model_dump() for summary in chart.summaries],
    }


def main() -> None:
    args = parse_args()
    print(json.dumps(asyncio.run(replay(args)), indent=2))


if __name__ == "__main__":
    main()
