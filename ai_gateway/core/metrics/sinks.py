"""Destinations for per-request metric data points.

A data point has one grouping index (the provider), descriptive blobs
(provider, model, error or None), numeric doubles (status, latency ms)
and the error category of a failed request.
Delivery is best effort: sinks may raise, the emitter swallows it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

from ai_gateway.core.exceptions import ObservabilitySinkError

logger = logging.getLogger(__name__)
metrics_logger = logging.getLogger("ai_gateway.metrics")


@dataclass(frozen=True)
class DataPoint:
    """One metric record handed to a sink."""

    indexes: list[str]
    blobs: list[str | None] = field(default_factory=list)
    doubles: list[float] = field(default_factory=list)
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MetricsSink(ABC):
    """Abstract fire-and-forget metrics collector."""

    @abstractmethod
    async def write_data_point(self, point: DataPoint) -> None:
        """Deliver one data point. May raise; callers swallow failures."""

    async def close(self) -> None:
        """Release sink resources. The default does nothing."""


class LoggingMetricsSink(MetricsSink):
    """Writes one INFO line per request to the ``ai_gateway.metrics`` logger."""

    async def write_data_point(self, point: DataPoint) -> None:
        provider, model, error = (point.blobs + [None, None, None])[:3]
        status, latency_ms = (point.doubles + [0, 0])[:2]
        line = (
            f"📊 {provider} | Model: {model} | Status: {int(status)} | "
            f"Latency: {latency_ms:.0f}ms"
        )
        if point.error_type:
            line = f"{line} | Error type: {point.error_type}"
        if error:
            line = f"{line} | Error: {error}"
        if error or point.error_type:
            metrics_logger.warning(line)
        else:
            metrics_logger.info(line)


class MemoryMetricsSink(MetricsSink):
    """Keeps the most recent data points in a bounded ring buffer."""

    def __init__(self, maxlen: int = 1000) -> None:
        self.points: deque[DataPoint] = deque(maxlen=maxlen)

    async def write_data_point(self, point: DataPoint) -> None:
        self.points.append(point)

    def __len__(self) -> int:
        return len(self.points)


class HttpMetricsSink(MetricsSink):
    """POSTs each data point as JSON to an external collector.

    Uses the gateway's shared httpx client; the sink never closes it.
    """

    def __init__(self, url: str, client: httpx.AsyncClient) -> None:
        self.url = url
        self.client = client

    async def write_data_point(self, point: DataPoint) -> None:
        try:
            response = await self.client.post(self.url, json=point.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ObservabilitySinkError(f"Metrics collector rejected data point: {e}") from e


def create_metrics_sink(
    kind: str, *, url: str | None = None, client: httpx.AsyncClient | None = None
) -> MetricsSink | None:
    """Build the sink named by the METRICS_SINK setting.

    Returns:
        The sink, or None when metrics are disabled.
    """
    kind = kind.lower()
    if kind == "none":
        return None
    if kind == "log":
        return LoggingMetricsSink()
    if kind == "memory":
        return MemoryMetricsSink()
    if kind == "http":
        if not url or client is None:
            raise ValueError("The http metrics sink needs a collector URL and an HTTP client")
        return HttpMetricsSink(url, client)
    raise ValueError(f"Unknown metrics sink '{kind}'")
