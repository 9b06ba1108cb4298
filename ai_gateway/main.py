import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from ai_gateway import __version__
from ai_gateway.api.endpoints import router as api_router
from ai_gateway.api.orchestrator.proxy_engine import ProxyEngine
from ai_gateway.api.services.observability import ObservabilityEmitter
from ai_gateway.api.services.upstream_dispatcher import UpstreamDispatcher
from ai_gateway.core.config import ConfigError, GatewayConfig
from ai_gateway.core.logging import configure_root_logging
from ai_gateway.core.metrics import MetricsSink, create_metrics_sink
from ai_gateway.core.provider import ProviderRegistry
from ai_gateway.core.provider.rotation_counter import RotationCounter
from ai_gateway.core.storage import AtomicCounterStore, create_counter_store

logger = logging.getLogger(__name__)


def create_app(
    config: GatewayConfig | None = None,
    *,
    counter_store: AtomicCounterStore | None = None,
    metrics_sink: MetricsSink | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    configure_logging: bool = False,
) -> FastAPI:
    """Build the gateway application.

    Args:
        config: Settings; loaded from the environment when omitted
        counter_store: Rotation cursor store; built from ``rotation_store`` when omitted
        metrics_sink: Metrics destination; built from ``metrics_sink`` when omitted
        transport: Optional httpx transport for the upstream client
        configure_logging: Install the root logging handler

    The shared httpx client, the counter store and the sink are opened in the
    lifespan and closed at shutdown after pending metric deliveries finish.
    """
    config = config or GatewayConfig.load()
    if configure_logging:
        configure_root_logging(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout, connect=config.connect_timeout),
            follow_redirects=True,
            transport=transport,
        )
        store = counter_store or create_counter_store(config.rotation_store)
        sink = metrics_sink
        if sink is None:
            sink = create_metrics_sink(
                config.metrics_sink, url=config.metrics_sink_url, client=client
            )
        emitter = ObservabilityEmitter(sink)

        app.state.config = config
        app.state.emitter = emitter
        app.state.proxy_engine = ProxyEngine(
            config=config,
            registry=ProviderRegistry(),
            counter=RotationCounter(store),
            dispatcher=UpstreamDispatcher(client),
            emitter=emitter,
        )
        logger.info(
            f"Gateway ready: rotation store={config.rotation_store}, "
            f"metrics sink={type(sink).__name__ if sink else 'none'}"
        )
        try:
            yield
        finally:
            await emitter.drain()
            if sink is not None:
                await sink.close()
            await store.close()
            await client.aclose()

    app = FastAPI(
        title="AI Gateway Proxy",
        version=__version__,
        lifespan=lifespan,
        # The catch-all route owns every path.
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(api_router)
    return app


def app_factory() -> FastAPI:
    """Entry point for ``uvicorn --factory``."""
    return create_app(GatewayConfig.load(), configure_logging=True)


def main() -> None:
    if len(sys.argv) > 1 and sys.argv[1] == "--help":
        print(f"AI Gateway Proxy v{__version__}")
        print("")
        print("Usage: ai-gateway")
        print("       or: aigw start")
        print("")
        print("Environment variables:")
        print("  MASTER_KEY        - Shared credential that enables key rotation")
        print("  <PROVIDER>_KEYS   - JSON array of upstream keys (e.g. OPENAI_KEYS)")
        print("  ROTATION_LIMIT    - Max attempts per rotated request (default: 5)")
        print("  ROTATION_STORE    - 'memory' or a SQLite file path (default: memory)")
        print("  METRICS_SINK      - none, log, memory or http (default: none)")
        print("  HOST / PORT       - Bind address (default: 0.0.0.0:8787)")
        print("")
        print("For all options: aigw config docs")
        sys.exit(0)

    try:
        config = GatewayConfig.load()
    except ConfigError as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    print(f"🚀 AI Gateway Proxy v{__version__}")
    print(f"   Master Key: {config.master_key_hash}")
    print(f"   Key Pools : {', '.join(sorted(config.key_pools)) or 'none'}")
    print(f"   Server    : {config.host}:{config.port}")
    print("")

    log_level = config.log_level.lower()
    uvicorn.run(
        "ai_gateway.main:app_factory",
        factory=True,
        host=config.host,
        port=config.port,
        log_level=log_level,
        access_log=log_level == "debug",
        reload=False,
    )


if __name__ == "__main__":
    main()
