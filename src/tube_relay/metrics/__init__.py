"""Prometheus metrics for the relay."""

from tube_relay.metrics.collector import MetricsCollector, RelayMetrics

__all__ = ["MetricsCollector", "RelayMetrics"]
