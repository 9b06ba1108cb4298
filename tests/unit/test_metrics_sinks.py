import json
import logging

import httpx
import pytest
import respx

from ai_gateway.core.exceptions import ObservabilitySinkError
from ai_gateway.core.metrics import (
    DataPoint,
    HttpMetricsSink,
    LoggingMetricsSink,
    MemoryMetricsSink,
    create_metrics_sink,
)

POINT = DataPoint(indexes=["openai"], blobs=["openai", "gpt-4o", None], doubles=[200.0, 41.7])
COLLECTOR_URL = "https://metrics.example.com/ingest"


@pytest.mark.unit
@pytest.mark.asyncio
class TestSinks:
    async def test_memory_sink_is_bounded(self):
        sink = MemoryMetricsSink(maxlen=2)
        for _ in range(3):
            await sink.write_data_point(POINT)
        assert len(sink) == 2

    async def test_logging_sink_writes_info_line(self, caplog):
        with caplog.at_level(logging.INFO, logger="ai_gateway.metrics"):
            await LoggingMetricsSink().write_data_point(POINT)

        assert "openai | Model: gpt-4o | Status: 200 | Latency: 42ms" in caplog.text

    async def test_logging_sink_warns_on_error(self, caplog):
        point = DataPoint(["openai"], ["openai", "unknown", "timed out"], [504.0, 10.0])
        with caplog.at_level(logging.INFO, logger="ai_gateway.metrics"):
            await LoggingMetricsSink().write_data_point(point)

        assert caplog.records[-1].levelno == logging.WARNING
        assert "Error: timed out" in caplog.text

    async def test_logging_sink_reports_error_category(self, caplog):
        point = DataPoint(["groq"], ["groq", "llama", None], [429.0, 80.0], error_type="rate_limit")
        with caplog.at_level(logging.INFO, logger="ai_gateway.metrics"):
            await LoggingMetricsSink().write_data_point(point)

        assert caplog.records[-1].levelno == logging.WARNING
        assert "Status: 429" in caplog.text
        assert "Error type: rate_limit" in caplog.text

    async def test_http_sink_posts_json(self):
        async with httpx.AsyncClient() as client:
            with respx.mock:
                route = respx.post(COLLECTOR_URL).respond(204)
                await HttpMetricsSink(COLLECTOR_URL, client).write_data_point(POINT)

        assert route.called
        assert json.loads(route.calls[0].request.content) == POINT.to_dict()

    async def test_http_sink_raises_sink_error(self):
        async with httpx.AsyncClient() as client:
            with respx.mock:
                respx.post(COLLECTOR_URL).respond(503)
                with pytest.raises(ObservabilitySinkError):
                    await HttpMetricsSink(COLLECTOR_URL, client).write_data_point(POINT)


@pytest.mark.unit
class TestCreateMetricsSink:
    def test_none_disables_metrics(self):
        assert create_metrics_sink("none") is None

    @pytest.mark.parametrize("kind,cls", [("log", LoggingMetricsSink), ("MEMORY", MemoryMetricsSink)])
    def test_named_sinks(self, kind, cls):
        assert isinstance(create_metrics_sink(kind), cls)

    def test_http_requires_url_and_client(self):
        with pytest.raises(ValueError):
            create_metrics_sink("http")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            create_metrics_sink("statsd")
