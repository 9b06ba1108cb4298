"""Process-wide gateway configuration.

All settings are read once at startup into a frozen ``GatewayConfig`` that
the app factory passes by reference to the proxy engine. Nothing here is
mutated after loading.
"""

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ai_gateway.core.config.schema import ConfigSchema
from ai_gateway.core.config.validation import ConfigError, load_env_var
from ai_gateway.core.logging import parse_log_level
from ai_gateway.core.provider.provider_registry import DEFAULT_PROVIDERS


def _frozen_pools(pools: Mapping[str, tuple[str, ...]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({name: tuple(keys) for name, keys in pools.items() if keys})


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable gateway settings.

    Attributes:
        host: Address uvicorn binds to
        port: Port uvicorn binds to
        log_level: Root logging level name
        master_key: Shared credential that switches a request into rotation mode
        key_pools: Upstream credentials per provider name (providers without a
            pool are absent)
        rotation_limit: Upper bound on upstream attempts per rotated request
        rotation_store: "memory" or a SQLite database path
        request_timeout: Upstream timeout in seconds
        connect_timeout: Upstream connect timeout in seconds
        metrics_sink: "none", "log", "memory" or "http"
        metrics_sink_url: Collector URL for the http sink
    """

    host: str = "0.0.0.0"
    port: int = 8787
    log_level: str = "INFO"
    master_key: str | None = None
    key_pools: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    rotation_limit: int = 5
    rotation_store: str = "memory"
    request_timeout: float = 300.0
    connect_timeout: float = 30.0
    metrics_sink: str = "none"
    metrics_sink_url: str | None = None

    def __post_init__(self) -> None:
        if self.rotation_limit < 1:
            raise ValueError(f"rotation_limit must be a positive integer, got {self.rotation_limit}")
        object.__setattr__(self, "key_pools", _frozen_pools(self.key_pools))
        object.__setattr__(self, "log_level", parse_log_level(self.log_level))
        object.__setattr__(self, "metrics_sink", self.metrics_sink.lower())
        if self.metrics_sink == "http" and not self.metrics_sink_url:
            raise ValueError("metrics_sink 'http' requires metrics_sink_url")

    @classmethod
    def load(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Load configuration using schema-based validation.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigError: If any environment variable fails validation
        """
        pools = {
            name: load_env_var(ConfigSchema.key_pool_spec(name), environ)
            for name in DEFAULT_PROVIDERS
        }
        metrics_sink = load_env_var(ConfigSchema.METRICS_SINK, environ)
        metrics_sink_url = load_env_var(ConfigSchema.METRICS_SINK_URL, environ)
        if metrics_sink.lower() == "http" and not metrics_sink_url:
            raise ConfigError(
                ConfigSchema.METRICS_SINK.name,
                metrics_sink,
                f"{ConfigSchema.METRICS_SINK_URL.name} must be set for the http sink",
            )

        return cls(
            host=load_env_var(ConfigSchema.HOST, environ),
            port=load_env_var(ConfigSchema.PORT, environ),
            log_level=load_env_var(ConfigSchema.LOG_LEVEL, environ),
            master_key=load_env_var(ConfigSchema.MASTER_KEY, environ) or None,
            key_pools=pools,
            rotation_limit=load_env_var(ConfigSchema.ROTATION_LIMIT, environ),
            rotation_store=load_env_var(ConfigSchema.ROTATION_STORE, environ).strip(),
            request_timeout=load_env_var(ConfigSchema.REQUEST_TIMEOUT, environ),
            connect_timeout=load_env_var(ConfigSchema.CONNECT_TIMEOUT, environ),
            metrics_sink=metrics_sink,
            metrics_sink_url=metrics_sink_url,
        )

    def key_pool(self, provider_name: str) -> tuple[str, ...]:
        """Return the credential pool for a provider, empty when unconfigured."""
        return self.key_pools.get(provider_name, ())

    @property
    def rotation_enabled(self) -> bool:
        return self.master_key is not None

    @property
    def metrics_enabled(self) -> bool:
        return self.metrics_sink != "none"

    @property
    def master_key_hash(self) -> str:
        return (
            "<not-set>"
            if not self.master_key
            else "sha256:" + hashlib.sha256(self.master_key.encode()).hexdigest()[:16] + "..."
        )
