"""
Prometheus Metrics

Defines all metrics exposed by the chart service:
- Upstream fetch outcomes and dropped records
- Pipeline latency per stage
- Shape of the produced charts (series, offline spans)
"""

import logging

from prometheus_client import Counter, Histogram, Gauge, start_http_server

from ..config import settings

logger = logging.getLogger("netchart.metrics")


class ChartMetrics:
    """
    Container for all Prometheus metrics.

    Organized by category:
    - Fetch metrics
    - Latency metrics
    - Chart metrics
    """

    def __init__(self):
        """Initialize all metrics."""

        # =====================================================================
        # Fetch Metrics
        # =====================================================================
        self.fetch_total = Counter(
            "netchart_fetch_total",
            "Upstream telemetry fetches by outcome",
            labelnames=["outcome"],
        )

        self.records_dropped_total = Counter(
            "netchart_records_dropped_total",
            "Upstream records dropped because they did not parse",
        )

        self.payload_shapes_total = Counter(
            "netchart_payload_shapes_total",
            "Upstream payloads by detected shape",
            labelnames=["shape"],
        )

        # =====================================================================
        # Latency Metrics
        # =====================================================================
        self.pipeline_latency = Histogram(
            "netchart_pipeline_latency_ms",
            "End-to-end pipeline latency in milliseconds (fetch included)",
            buckets=[10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
        )

        self.transform_latency = Histogram(
            "netchart_transform_latency_ms",
            "Reconcile/estimate/format latency in milliseconds",
            buckets=[1, 2, 5, 10, 25, 50, 100, 250],
        )

        # =====================================================================
        # Chart Metrics
        # =====================================================================
        self.series_total = Gauge(
            "netchart_series_total",
            "Number of monitor series in the last chart per server",
            labelnames=["server_id"],
        )

        self.offline_spans = Gauge(
            "netchart_offline_spans",
            "Number of offline spans in the last chart per server",
            labelnames=["server_id"],
        )


# Global metrics instance
metrics = ChartMetrics()


def setup_metrics() -> None:
    """
    Setup standalone Prometheus metrics server.

    Starts HTTP server on configured port to expose metrics.
    """
    if settings.metrics_enabled and settings.metrics_external_enabled:
        try:
            start_http_server(settings.metrics_port)
            logger.info("Metrics server started on port %d", settings.metrics_port)
        except OSError as e:
            logger.warning("Failed to start metrics server: %s", e)
