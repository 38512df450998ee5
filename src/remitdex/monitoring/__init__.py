"""Operational metrics."""

from remitdex.monitoring.metrics import MetricsCollector, MetricsSnapshot

__all__ = ["MetricsCollector", "MetricsSnapshot"]
