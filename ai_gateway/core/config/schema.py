"""Declarative schema for environment variable configuration.

This module provides a single source of truth for all environment variables,
including automatic type coercion, validation, and documentation generation.

The schema-based approach provides:
- Single definition point for all config options
- Automatic type coercion (str -> int/float/bool)
- Validation with clear error messages
- Self-documenting configuration
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ai_gateway.core.logging import VALID_LEVELS


@dataclass(frozen=True)
class EnvVarSpec:
    """Specification for a single environment variable.

    Attributes:
        name: Environment variable name (e.g., "PORT", "LOG_LEVEL")
        default: Default value if env var not set
        type_hint: Type for validation (int, str, float, bool)
        description: Human-readable description for docs
        validator: Optional custom validation function
        coerce: Optional function to convert string to target type
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


def parse_key_pool(value: str) -> tuple[str, ...]:
    """Parse a JSON array of upstream credentials.

    An empty array is allowed and means "no pool configured".

    Raises:
        ValueError: If the value is not a JSON array of non-empty strings.
    """
    try:
        keys = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"not valid JSON ({e.msg})") from e

    if not isinstance(keys, list):
        raise ValueError("expected a JSON array of strings")
    for key in keys:
        if not isinstance(key, str) or not key:
            raise ValueError("every key must be a non-empty string")
    return tuple(keys)


def _key_pool_spec(provider: str) -> EnvVarSpec:
    return EnvVarSpec(
        name=f"{provider.upper()}_KEYS",
        default=(),
        type_hint=tuple,
        description=f"JSON array of {provider} API keys used in rotation mode",
        coerce=parse_key_pool,
    )


class ConfigSchema:
    """Registry of all configuration environment variables.

    Each attribute is an EnvVarSpec that defines:
    - The environment variable name
    - Default value
    - Type for validation
    - Human-readable description
    - Optional validation rules
    """

    # === Server Settings ===

    HOST = EnvVarSpec(
        name="HOST",
        default="0.0.0.0",
        type_hint=str,
        description="Server host address to bind to",
    )

    PORT = EnvVarSpec(
        name="PORT",
        default=8787,
        type_hint=int,
        description="Server port number",
        validator=lambda x: 1 <= x <= 65535,
    )

    LOG_LEVEL = EnvVarSpec(
        name="LOG_LEVEL",
        default="INFO",
        type_hint=str,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: (x.split() or [""])[0].upper() in VALID_LEVELS,
    )

    # === Rotation Settings ===

    MASTER_KEY = EnvVarSpec(
        name="MASTER_KEY",
        default=None,
        type_hint=str,
        description="Shared master key; callers presenting it get a key from the rotation pool",
    )

    ROTATION_LIMIT = EnvVarSpec(
        name="ROTATION_LIMIT",
        default=5,
        type_hint=int,
        description="Maximum upstream attempts per rotated request (clamped to pool size)",
        validator=lambda x: x > 0,
    )

    ROTATION_STORE = EnvVarSpec(
        name="ROTATION_STORE",
        default="memory",
        type_hint=str,
        description="Rotation cursor store: 'memory' or a path to a SQLite database file",
        validator=lambda x: bool(x.strip()),
    )

    CEREBRAS_KEYS = _key_pool_spec("cerebras")
    CLAUDE_KEYS = _key_pool_spec("claude")
    GEMINI_KEYS = _key_pool_spec("gemini")
    GROQ_KEYS = _key_pool_spec("groq")
    OPENAI_KEYS = _key_pool_spec("openai")

    # === Timeout Settings ===

    REQUEST_TIMEOUT = EnvVarSpec(
        name="REQUEST_TIMEOUT",
        default=300.0,
        type_hint=float,
        description="Upstream request timeout in seconds",
        validator=lambda x: x > 0,
    )

    CONNECT_TIMEOUT = EnvVarSpec(
        name="CONNECT_TIMEOUT",
        default=30.0,
        type_hint=float,
        description="Upstream connect timeout in seconds",
        validator=lambda x: x > 0,
    )

    # === Metrics Settings ===

    METRICS_SINK = EnvVarSpec(
        name="METRICS_SINK",
        default="none",
        type_hint=str,
        description="Request metrics sink: 'none', 'log', 'memory' or 'http'",
        validator=lambda x: x.lower() in ["none", "log", "memory", "http"],
    )

    METRICS_SINK_URL = EnvVarSpec(
        name="METRICS_SINK_URL",
        default=None,
        type_hint=str,
        description="Collector URL receiving data points when METRICS_SINK=http",
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Attribute name to EnvVarSpec, for every declared variable."""
        return {
            name: value
            for name, value in vars(cls).items()
            if isinstance(value, EnvVarSpec)
        }

    @classmethod
    def get_spec(cls, name: str) -> EnvVarSpec | None:
        """Look up a spec by environment variable name (e.g. "PORT")."""
        return next((spec for spec in cls.all_specs().values() if spec.name == name), None)

    @classmethod
    def key_pool_spec(cls, provider: str) -> EnvVarSpec:
        """Get the key pool specification for a provider name."""
        spec = cls.get_spec(f"{provider.upper()}_KEYS")
        if spec is None:
            raise KeyError(f"No key pool variable defined for provider '{provider}'")
        return spec

    @classmethod
    def generate_markdown_docs(cls) -> str:
        """Render every variable as one Markdown table, sorted by name."""
        lines = [
            "# Configuration Options",
            "",
            "Generated from `ConfigSchema`. Values are read from the environment or a `.env` file.",
            "",
            "| Variable | Type | Default | Description |",
            "|---|---|---|---|",
        ]
        for spec in sorted(cls.all_specs().values(), key=lambda s: s.name):
            default = f"`{spec.default}`" if spec.default not in (None, ()) else "unset"
            lines.append(
                f"| `{spec.name}` | `{spec.type_hint.__name__}` | {default} | {spec.description} |"
            )
        return "\n".join(lines) + "\n"
