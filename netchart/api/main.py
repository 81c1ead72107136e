"""
Netchart API

FastAPI application serving reconciled latency charts and host load
history to the dashboard front end.

Endpoints:
- GET /monitors/{server_id}: Assembled per-task series
- GET /monitors/{server_id}/chart: Timeline, offline spans and chart rows
- GET /monitors/{server_id}/stream: Realtime chart as server-sent events
- GET /servers/{server_id}/load: Host load history
- GET /ranges: Selectable display ranges
- GET /health: Health check
- GET /metrics: Prometheus metrics
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config import settings
from ..ingest import TelemetryClient, UpstreamError
from ..metrics import setup_metrics, telemetry
from ..pipeline import ChartPipeline, ChartResult, RealtimePoller
from ..timeline import build_range_options
from .auth import require_api_token, require_metrics_token
from .dependencies import get_pipeline

logger = logging.getLogger("netchart.api")


def _chart_payload(server_id: int, result: ChartResult) -> dict:
    if not result.monitors:
        return {"server_id": server_id, "no_data": True, "monitors": [], "rows": []}
    return {"no_data": False, **result.to_dict()}


def create_app(client: Optional[TelemetryClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        client: Upstream client to use instead of one built from settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Creates the upstream client and the pipeline, and closes the
        client on shutdown.
        """
        telemetry_client = client or TelemetryClient()
        app.state.pipeline = ChartPipeline(telemetry_client)

        if settings.metrics_enabled:
            setup_metrics()

        yield

        await telemetry_client.close()
        app.state.pipeline = None

    app = FastAPI(
        title="Netchart API",
        description="Gap-aware latency and packet-loss charts",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    async def health_check(pipeline: ChartPipeline = Depends(get_pipeline)):
        """
        Health check endpoint.

        Reports degraded when the upstream backend cannot list nodes.
        """
        health = {"status": "healthy", "components": {"upstream": False}}
        try:
            await pipeline.client.get_nodes()
            health["components"]["upstream"] = True
        except UpstreamError as e:
            logger.warning("Upstream health check failed: %s", e)
            health["status"] = "degraded"
        return health

    @app.get("/metrics")
    def metrics_endpoint(_: None = Depends(require_metrics_token)):
        """Expose Prometheus metrics with optional token auth."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/metrics/summary")
    def metrics_summary(hours: int = 24, _: None = Depends(require_metrics_token)):
        """Return recent pipeline telemetry."""
        return telemetry.snapshot(hours=hours)

    @app.get("/ranges")
    def ranges(
        kind: Literal["ping", "load"] = "ping",
        max_hours: Optional[float] = None,
        _: None = Depends(require_api_token),
    ):
        """Selectable display ranges for the latency (ping) or load chart."""
        if kind == "ping":
            retention = max_hours if max_hours is not None else settings.ping_record_preserve_hours
            options = build_range_options(
                retention,
                settings.ping_preset_hours_list,
                hide_max_when_below_or_equal=1,
            )
        else:
            options = build_range_options(max_hours, settings.load_preset_hours_list)
        return [option.model_dump() for option in options]

    @app.get("/monitors/{server_id}")
    async def monitors(
        server_id: int,
        hours: int = Query(default=settings.default_range_hours, ge=1),
        pipeline: ChartPipeline = Depends(get_pipeline),
        _: None = Depends(require_api_token),
    ):
        """Assembled series for a server (one per ping task)."""
        try:
            response = await pipeline.fetch_monitors(server_id, hours)
        except UpstreamError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="fetch failed")
        return response.model_dump(by_alias=True)

    @app.get("/monitors/{server_id}/chart")
    async def chart(
        server_id: int,
        hours: int = Query(default=settings.default_range_hours, ge=1),
        peak_cut: bool = False,
        selected: list[str] = Query(default=[]),
        pipeline: ChartPipeline = Depends(get_pipeline),
        _: None = Depends(require_api_token),
    ):
        """Chart rows for a server."""
        try:
            result = await pipeline.run(
                server_id,
                hours,
                peak_cut_enabled=peak_cut,
                selected=selected,
            )
        except UpstreamError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="fetch failed")
        return _chart_payload(server_id, result)

    @app.get("/monitors/{server_id}/stream")
    async def stream(
        server_id: int,
        peak_cut: bool = False,
        selected: list[str] = Query(default=[]),
        max_ticks: Optional[int] = Query(default=None, ge=1),
        pipeline: ChartPipeline = Depends(get_pipeline),
        _: None = Depends(require_api_token),
    ):
        """
        Realtime (one hour) chart, re-built every REALTIME_POLL_SECONDS
        and sent as server-sent events until the client disconnects.
        """
        poller = RealtimePoller(pipeline)

        async def events():
            charts = poller.stream(
                server_id,
                max_ticks=max_ticks,
                peak_cut_enabled=peak_cut,
                selected=selected,
            )
            async for result in charts:
                yield f"data: {json.dumps(_chart_payload(server_id, result))}\n\n"

        return StreamingResponse(events(), media_type="text/event-stream")

    @app.get("/servers/{server_id}/load")
    async def load(
        server_id: int,
        hours: int = Query(default=settings.default_range_hours, ge=1),
        pipeline: ChartPipeline = Depends(get_pipeline),
        _: None = Depends(require_api_token),
    ):
        """Host load history for a server, sorted by time."""
        try:
            response = await pipeline.fetch_load(server_id, hours)
        except UpstreamError:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="fetch failed")
        return response.model_dump()


app = create_app()


# Entry point for running directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "netchart.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_debug,
    )
