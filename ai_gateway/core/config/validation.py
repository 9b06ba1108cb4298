"""Coercion and validation of environment variables against ConfigSchema.

Every failure surfaces as a ConfigError naming the variable and the raw
value, so startup and ``aigw config validate`` can report it verbatim.
"""

import os
from collections.abc import Callable, Mapping
from typing import Any

from ai_gateway.core.config.schema import ConfigSchema, EnvVarSpec


class ConfigError(Exception):
    """An environment variable that could not be loaded.

    Attributes:
        env_var: The environment variable name
        value: The raw value that was rejected
        message: What is wrong with it
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


_COERCERS: dict[type, Callable[[str], Any]] = {
    bool: _parse_bool,
    int: int,
    float: float,
}


def load_env_var(spec: EnvVarSpec, environ: Mapping[str, str] | None = None) -> Any:
    """Read one variable, falling back to its default when unset.

    The spec's own ``coerce`` wins over the type-based coercers; strings
    pass through unchanged. The validator, if any, runs on the coerced value.

    Args:
        spec: Variable definition from ConfigSchema
        environ: Mapping to read from (defaults to os.environ)

    Raises:
        ConfigError: If coercion or validation fails
    """
    source = os.environ if environ is None else environ
    raw_value = source.get(spec.name)
    if raw_value is None:
        return spec.default

    coerce = spec.coerce or _COERCERS.get(spec.type_hint)
    try:
        value = coerce(raw_value) if coerce is not None else raw_value
    except (ValueError, TypeError) as e:
        raise ConfigError(
            spec.name, raw_value, f"Cannot convert to {spec.type_hint.__name__}: {e}"
        ) from e

    if spec.validator is None:
        return value
    try:
        valid = spec.validator(value)
    except (TypeError, ValueError, IndexError) as e:
        raise ConfigError(spec.name, raw_value, f"Validation error: {e}") from e
    if not valid:
        raise ConfigError(spec.name, raw_value, f"Value out of range for {spec.name}")
    return value


def load_all_specs(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Load every schema variable without stopping at the first failure.

    Returns:
        Variable name to loaded value, or to the ConfigError it raised.
    """
    result: dict[str, Any] = {}
    for name, spec in ConfigSchema.all_specs().items():
        try:
            result[name] = load_env_var(spec, environ)
        except ConfigError as e:
            result[name] = e
    return result


def validate_all(environ: Mapping[str, str] | None = None) -> list[ConfigError]:
    """Every ConfigError in the environment, empty when the config is valid."""
    loaded = load_all_specs(environ)
    return [value for value in loaded.values() if isinstance(value, ConfigError)]
