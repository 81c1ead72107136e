"""
Pytest Configuration and Fixtures

Provides sample upstream payloads, assembled series and an in-process
mock of the monitoring backend's JSON-RPC endpoint.
"""

import json
from datetime import datetime, UTC
from typing import AsyncGenerator, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from netchart.ingest import TelemetryClient, node_numeric_id
from netchart.schemas import MonitorSeries

MINUTE_MS = 60_000
BASE_MS = int(datetime(2026, 1, 1, tzinfo=UTC).timestamp() * 1000)

NODE_ID = "0f6c1b9e-3a52-4c1e-9d8b-6e2f2c1d7a10"
SERVER_ID = node_numeric_id(NODE_ID)
RPC_URL = "http://upstream.test/api/rpc2"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests (no infrastructure)")
    config.addinivalue_line("markers", "integration: in-process API tests against a mocked backend")


def iso(ms: int) -> str:
    """Epoch milliseconds to an ISO-8601 UTC string."""
    return datetime.fromtimestamp(ms / 1000, UTC).isoformat().replace("+00:00", "Z")


def make_series(
    name: str,
    points: list[tuple[int, Optional[float]]],
    monitor_id: int = 1,
    server_id: int = 7,
) -> MonitorSeries:
    """Build an assembled series from (timestamp, delay) pairs."""
    return MonitorSeries(
        monitor_id=monitor_id,
        monitor_name=name,
        server_id=server_id,
        server_name="edge-01",
        created_at=[t for t, _ in points],
        avg_delay=[v for _, v in points],
    )


@pytest.fixture
def tasks_payload() -> dict:
    """Task list plus flat records; task 3 has no records."""
    return {
        "tasks": [
            {"id": 1, "name": "CT"},
            {"id": 2, "name": "CU"},
            {"id": 3, "name": "CM"},
        ],
        "records": [
            {"task_id": 1, "time": iso(BASE_MS + 2 * MINUTE_MS), "value": 42.5},
            {"task_id": 1, "time": iso(BASE_MS), "value": 40.0},
            {"task_id": 1, "time": iso(BASE_MS + MINUTE_MS), "value": -1},
            {"task_id": 2, "time": iso(BASE_MS), "value": 88},
            {"task_id": 2, "time": "not-a-time", "value": 90},
            {"task_id": 2, "time": iso(BASE_MS + MINUTE_MS), "value": "n/a"},
        ],
        "from": iso(BASE_MS),
        "to": iso(BASE_MS + 10 * MINUTE_MS),
    }


@pytest.fixture
def records_payload() -> dict:
    """Records only; identities come from the records themselves."""
    return {
        "records": [
            {"task_id": 5, "name": "HKG", "time": iso(BASE_MS + MINUTE_MS), "value": 12},
            {"task_id": 5, "name": "HKG", "time": iso(BASE_MS), "value": 11},
            {"time": iso(BASE_MS), "value": 30},
        ]
    }


@pytest.fixture
def record_array_payload() -> list:
    """Bare record array."""
    return [
        {"task_id": 9, "name": "SIN", "time": iso(BASE_MS + i * MINUTE_MS), "value": 60 + i}
        for i in range(12)
    ]


@pytest.fixture
def gap_series() -> list[MonitorSeries]:
    """Two series sampled every minute with a shared 10-minute outage."""
    times = [BASE_MS + i * MINUTE_MS for i in range(5)] + [BASE_MS + i * MINUTE_MS for i in range(15, 20)]
    return [
        make_series("CT", [(t, 40.0 + (t - BASE_MS) / MINUTE_MS) for t in times], monitor_id=1),
        make_series("CU", [(t, 80.0) for t in times], monitor_id=2),
    ]


def make_upstream(
    records: object,
    nodes: Optional[dict] = None,
    fail: Optional[str] = None,
    calls: Optional[list] = None,
    load: object = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """
    Build a JSON-RPC handler for httpx.MockTransport.

    Args:
        records: Result returned for common:getRecords
        nodes: Result returned for common:getNodes
        fail: When set, getRecords answers with this error string
        calls: Optional list collecting (method, params) of every call
        load: Result returned for common:getRecords with type "load"
    """
    nodes = nodes if nodes is not None else {NODE_ID: {"name": "Tokyo"}}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        if calls is not None:
            calls.append((method, body.get("params")))
        if method == "common:getNodes":
            result = nodes
        elif method == "common:getRecords":
            if fail:
                return httpx.Response(200, json={"error": fail})
            params = body.get("params") or {}
            result = load if params.get("type") == "load" else records
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"message": "no such method"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> TelemetryClient:
    transport = httpx.MockTransport(handler)
    return TelemetryClient(
        client=httpx.AsyncClient(transport=transport),
        rpc_url=RPC_URL,
        max_count=4000,
    )


@pytest_asyncio.fixture
async def upstream_client(tasks_payload: dict) -> AsyncGenerator[TelemetryClient, None]:
    client = make_client(make_upstream(tasks_payload))
    yield client
    await client._client.aclose()


@pytest_asyncio.fixture
async def api_client(tasks_payload: dict, load_payload: dict) -> AsyncGenerator[AsyncClient, None]:
    """
    Get async HTTP client for API tests.

    Uses the lifespan context manager with a mocked backend.
    """
    from netchart.api.main import create_app

    app = create_app(client=make_client(make_upstream(tasks_payload, load=load_payload)))
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def load_payload() -> dict:
    """Load records keyed by node, out of order, one without a timestamp."""
    return {
        "records": {
            NODE_ID: [
                {"time": iso(BASE_MS + MINUTE_MS), "cpu": 12.5, "ram": 2048, "ram_total": 8192, "net_in": "1024"},
                {"time": iso(BASE_MS), "cpu": 10, "ram": None, "load": 0.4},
                {"cpu": 99},
            ],
            "other-node": [{"time": iso(BASE_MS), "cpu": 1}],
        }
    }
