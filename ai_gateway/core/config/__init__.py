"""Configuration loading for the gateway."""

from ai_gateway.core.config.config import GatewayConfig
from ai_gateway.core.config.schema import ConfigSchema, EnvVarSpec
from ai_gateway.core.config.validation import ConfigError, load_env_var, validate_all

__all__ = [
    "ConfigError",
    "ConfigSchema",
    "EnvVarSpec",
    "GatewayConfig",
    "load_env_var",
    "validate_all",
]
