"""Shared pytest configuration and fixtures for the gateway tests."""

import pytest
from fastapi.testclient import TestClient

from ai_gateway.core.config import ConfigSchema, GatewayConfig
from ai_gateway.core.metrics import MemoryMetricsSink
from ai_gateway.core.storage import InMemoryCounterStore
from ai_gateway.main import create_app

# Import HTTP mocking fixtures from fixtures module
pytest_plugins = ["tests.fixtures.mock_http"]

from tests.config import MASTER_KEY, TEST_KEY_POOLS  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires services)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        if "tests/unit/" in str(item.fspath) or "tests/api/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def clean_gateway_environment(monkeypatch):
    """Keep the developer's shell and .env out of config-loading tests."""
    for spec in ConfigSchema.all_specs().values():
        monkeypatch.delenv(spec.name, raising=False)


@pytest.fixture
def gateway_config():
    """Rotation-enabled configuration with a three-key OpenAI pool."""
    return GatewayConfig(
        master_key=MASTER_KEY,
        key_pools=TEST_KEY_POOLS,
        rotation_limit=5,
    )


@pytest.fixture
def counter_store():
    return InMemoryCounterStore()


@pytest.fixture
def metrics_sink():
    return MemoryMetricsSink()


@pytest.fixture
def make_client(counter_store, metrics_sink):
    """Build a TestClient around a fresh app.

    Usage:
        with make_client(config) as client:
            client.post("/openai/v1/chat/completions", ...)

    Metric deliveries are drained when the client context exits.
    """

    def _make(config: GatewayConfig, **overrides) -> TestClient:
        overrides.setdefault("counter_store", counter_store)
        overrides.setdefault("metrics_sink", metrics_sink)
        return TestClient(create_app(config, **overrides))

    return _make
