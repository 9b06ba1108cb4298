"""Metrics sinks."""

from ai_gateway.core.metrics.sinks import (
    DataPoint,
    HttpMetricsSink,
    LoggingMetricsSink,
    MemoryMetricsSink,
    MetricsSink,
    create_metrics_sink,
)

__all__ = [
    "DataPoint",
    "HttpMetricsSink",
    "LoggingMetricsSink",
    "MemoryMetricsSink",
    "MetricsSink",
    "create_metrics_sink",
]
