"""Metrics module."""

from ftps_client.metrics.prometheus import MetricsCollector, get_metrics, start_metrics_server

__all__ = ["MetricsCollector", "get_metrics", "start_metrics_server"]
