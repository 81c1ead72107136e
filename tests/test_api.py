"""
API Tests

Integration tests for the chart API against a mocked backend.
"""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from netchart.api.main import create_app
from netchart.config import settings

from .conftest import SERVER_ID, make_client, make_upstream


@asynccontextmanager
async def _client_for(handler):
    app = create_app(client=make_client(handler))
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client


def _slow_first_records(handler, delay: float):
    """Delay the first getRecords answer so that requests overlap."""
    seen = []

    async def slow(request: httpx.Request) -> httpx.Response:
        if json.loads(request.content)["method"] == "common:getRecords":
            seen.append(request)
            if len(seen) == 1:
                await asyncio.sleep(delay)
        return handler(request)

    return slow


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_status(self, api_client: AsyncClient):
        response = await api_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["upstream"] is True

    @pytest.mark.asyncio
    async def test_degraded_when_upstream_down(self):
        async with _client_for(lambda request: httpx.Response(503)) as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"


class TestMonitorsEndpoint:
    """Tests for the assembled series endpoint."""

    @pytest.mark.asyncio
    async def test_series(self, api_client: AsyncClient):
        response = await api_client.get(f"/monitors/{SERVER_ID}", params={"hours": 6})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert [s["monitor_name"] for s in data["data"]] == ["CT", "CU", "CM"]
        assert "from" in data and "to" in data

    @pytest.mark.asyncio
    async def test_unknown_server(self, api_client: AsyncClient):
        response = await api_client.get("/monitors/1")

        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_invalid_hours(self, api_client: AsyncClient):
        response = await api_client.get(f"/monitors/{SERVER_ID}", params={"hours": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        async with _client_for(make_upstream([], fail="boom")) as client:
            response = await client.get(f"/monitors/{SERVER_ID}")

        assert response.status_code == 502
        assert response.json()["detail"] == "fetch failed"


class TestChartEndpoint:
    """Tests for the chart endpoint."""

    @pytest.mark.asyncio
    async def test_chart(self, api_client: AsyncClient):
        response = await api_client.get(f"/monitors/{SERVER_ID}/chart", params={"hours": 6})

        assert response.status_code == 200
        data = response.json()
        assert data["no_data"] is False
        assert data["monitors"] == ["CT", "CU", "CM"]
        assert data["has_offline"] is True
        assert data["rows"]
        assert data["range"]["source"] == "reported"

    @pytest.mark.asyncio
    async def test_single_monitor_with_peak_cut(self, api_client: AsyncClient):
        response = await api_client.get(
            f"/monitors/{SERVER_ID}/chart",
            params={"hours": 6, "selected": "CT", "peak_cut": "true"},
        )

        data = response.json()
        assert data["selected"] == ["CT"]
        assert data["peak_cut"] is True
        assert "avg_delay" in data["rows"][0]

    @pytest.mark.asyncio
    async def test_no_data(self, api_client: AsyncClient):
        response = await api_client.get("/monitors/1/chart")

        assert response.status_code == 200
        assert response.json() == {"server_id": 1, "no_data": True, "monitors": [], "rows": []}

    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        async with _client_for(make_upstream([], fail="boom")) as client:
            response = await client.get(f"/monitors/{SERVER_ID}/chart")

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_overlapping_requests_all_answered(self, tasks_payload):
        async with _client_for(_slow_first_records(make_upstream(tasks_payload), 0.2)) as client:
            plain, single = await asyncio.gather(
                client.get(f"/monitors/{SERVER_ID}/chart", params={"hours": 24}),
                client.get(
                    f"/monitors/{SERVER_ID}/chart",
                    params={"hours": 24, "peak_cut": "true", "selected": "CT"},
                ),
            )

        assert plain.status_code == 200
        assert single.status_code == 200
        assert plain.json()["selected"] == []
        assert single.json()["selected"] == ["CT"]

    @pytest.mark.asyncio
    async def test_overlapping_identical_requests(self, tasks_payload):
        async with _client_for(_slow_first_records(make_upstream(tasks_payload), 0.1)) as client:
            responses = await asyncio.gather(
                *(client.get(f"/monitors/{SERVER_ID}/chart", params={"hours": 6}) for _ in range(2))
            )

        assert [r.status_code for r in responses] == [200, 200]
        assert responses[0].json()["rows"] == responses[1].json()["rows"]

    @pytest.mark.asyncio
    async def test_duplicate_selection(self, api_client: AsyncClient):
        response = await api_client.get(
            f"/monitors/{SERVER_ID}/chart",
            params=[("selected", "CT"), ("selected", "CT"), ("peak_cut", "true")],
        )

        data = response.json()
        assert data["selected"] == ["CT"]
        assert "avg_delay" in data["rows"][0]


class TestRealtimeStream:
    """Tests for the realtime server-sent event stream."""

    @pytest.mark.asyncio
    async def test_stream_emits_charts(self, api_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "realtime_poll_seconds", 0.01)

        response = await api_client.get(f"/monitors/{SERVER_ID}/stream", params={"max_ticks": 2})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [json.loads(line[len("data: "):]) for line in response.text.splitlines() if line.startswith("data: ")]
        assert len(events) == 2
        assert all(event["realtime"] for event in events)
        assert events[0]["monitors"] == ["CT", "CU", "CM"]

    @pytest.mark.asyncio
    async def test_stream_unknown_server(self, api_client: AsyncClient):
        response = await api_client.get("/monitors/1/stream", params={"max_ticks": 1})

        (line,) = [line for line in response.text.splitlines() if line.startswith("data: ")]
        assert json.loads(line[len("data: "):])["no_data"] is True


class TestLoadEndpoint:
    """Tests for host load history."""

    @pytest.mark.asyncio
    async def test_load_history(self, api_client: AsyncClient):
        response = await api_client.get(f"/servers/{SERVER_ID}/load", params={"hours": 24})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert [s["cpu"] for s in data["data"]] == [10.0, 12.5]

    @pytest.mark.asyncio
    async def test_unknown_server(self, api_client: AsyncClient):
        response = await api_client.get("/servers/1/load")
        assert response.json() == {"success": True, "data": []}

    @pytest.mark.asyncio
    async def test_hours_must_be_positive(self, api_client: AsyncClient):
        response = await api_client.get(f"/servers/{SERVER_ID}/load", params={"hours": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        async with _client_for(make_upstream([], fail="boom")) as client:
            response = await client.get(f"/servers/{SERVER_ID}/load")

        assert response.status_code == 502


class TestRangesEndpoint:
    """Tests for range options."""

    @pytest.mark.asyncio
    async def test_ping_ranges(self, api_client: AsyncClient):
        response = await api_client.get("/ranges", params={"kind": "ping", "max_hours": 72})

        assert response.status_code == 200
        options = response.json()
        assert options[0] == {"value": "realtime", "label": "Realtime"}
        assert [o["label"] for o in options[1:]] == ["6h", "12h", "1d", "3d"]

    @pytest.mark.asyncio
    async def test_short_retention_only_realtime(self, api_client: AsyncClient):
        response = await api_client.get("/ranges", params={"kind": "ping", "max_hours": 1})
        assert [o["value"] for o in response.json()] == ["realtime"]

    @pytest.mark.asyncio
    async def test_load_ranges(self, api_client: AsyncClient):
        response = await api_client.get("/ranges", params={"kind": "load"})
        assert [o["label"] for o in response.json()] == ["Realtime", "4h", "1d", "7d", "30d"]


class TestAuth:
    """Tests for optional token auth."""

    @pytest.mark.asyncio
    async def test_api_token_required_when_set(self, api_client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "secret")

        denied = await api_client.get("/ranges")
        allowed = await api_client.get("/ranges", headers={"Authorization": "Bearer secret"})
        by_key = await api_client.get("/ranges", headers={"X-API-Key": "secret"})

        assert denied.status_code == 401
        assert allowed.status_code == 200
        assert by_key.status_code == 200

    @pytest.mark.asyncio
    async def test_metrics(self, api_client: AsyncClient):
        await api_client.get(f"/monitors/{SERVER_ID}/chart")
        response = await api_client.get("/metrics")

        assert response.status_code == 200
        assert "netchart_fetch_total" in response.text

    @pytest.mark.asyncio
    async def test_metrics_summary(self, api_client: AsyncClient):
        await api_client.get(f"/monitors/{SERVER_ID}/chart")
        response = await api_client.get("/metrics/summary")

        assert response.status_code == 200
        assert response.json()["counts"].get("ok", 0) >= 1
