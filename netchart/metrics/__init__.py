# Metrics Module
from .prometheus import metrics, setup_metrics
from .telemetry import telemetry

__all__ = ["metrics", "setup_metrics", "telemetry"]
