"""Per-request metric reporting.

Design principles:
- Never block or fail the response: delivery runs in a detached task
- Graceful degradation: with no sink configured every call is a no-op
- Read the request body only when something will consume the model name
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ai_gateway.core.error_types import ErrorType
from ai_gateway.core.metrics.sinks import DataPoint, MetricsSink

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "unknown"
GEMINI_PROVIDER = "gemini"


@dataclass(slots=True)
class RequestSummary:
    """What the gateway records about one proxied request."""

    provider: str
    model: str = UNKNOWN_MODEL
    status: int = 0
    latency_ms: float = 0.0
    error: str | None = None
    error_type: ErrorType | None = None

    def to_data_point(self) -> DataPoint:
        return DataPoint(
            indexes=[self.provider],
            blobs=[self.provider, self.model, self.error],
            doubles=[float(self.status), self.latency_ms],
            error_type=self.error_type.value if self.error_type else None,
        )


def model_from_gemini_path(segments: Sequence[str]) -> str:
    """Gemini names the model in the path: ``.../models/<model>:<action>``."""
    try:
        model = segments[list(segments).index("models") + 1].split(":", 1)[0]
    except (ValueError, IndexError):
        return UNKNOWN_MODEL
    return model or UNKNOWN_MODEL


def model_from_body(body: bytes | None) -> str:
    """Read the ``model`` field of a JSON request body."""
    if not body:
        return UNKNOWN_MODEL
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return UNKNOWN_MODEL
    if not isinstance(payload, dict):
        return UNKNOWN_MODEL
    model = payload.get("model")
    return model if isinstance(model, str) and model else UNKNOWN_MODEL


class ObservabilityEmitter:
    """Hands request summaries to the metrics sink without awaiting delivery.

    Scheduled tasks are held in a set until they finish so they are not
    garbage collected mid-flight; ``drain`` awaits whatever is still pending
    at shutdown.
    """

    def __init__(self, sink: MetricsSink | None) -> None:
        self.sink = sink
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def needs_body(self, provider_name: str, method: str) -> bool:
        """Whether extracting the model requires reading the request body."""
        return self.enabled and method.upper() == "POST" and provider_name != GEMINI_PROVIDER

    def extract_model(
        self,
        provider_name: str,
        segments: Sequence[str],
        method: str,
        body: bytes | None = None,
    ) -> str:
        """Best-effort model name for a request; never raises.

        Args:
            provider_name: Resolved provider
            segments: Upstream path segments (provider prefix removed)
            method: HTTP method; only POST requests name a model
            body: Raw request body, when it was read
        """
        if not self.enabled or method.upper() != "POST":
            return UNKNOWN_MODEL
        if provider_name == GEMINI_PROVIDER:
            return model_from_gemini_path(segments)
        return model_from_body(body)

    def emit(self, summary: RequestSummary) -> None:
        """Schedule delivery of a summary and return immediately."""
        if self.sink is None:
            return
        task = asyncio.create_task(self._deliver(self.sink, summary.to_data_point()))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, sink: MetricsSink, point: DataPoint) -> None:
        try:
            await sink.write_data_point(point)
        except Exception as e:
            logger.debug(f"Dropped metric data point for {point.indexes}: {e}")

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
