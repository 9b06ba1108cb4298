"""Error type enumeration for the gateway.

Provides type-safe error categorization for metrics and logs.
"""

from enum import Enum

from ai_gateway.core.exceptions import (
    PoolNotConfiguredError,
    RotationStoreError,
    UnknownProviderError,
    UpstreamTransportError,
)


class ErrorType(str, Enum):
    """Error type categories recorded alongside failed requests.

    These error types are used for:
    - RequestSummary.error_type
    - Log lines for failed requests

    When adding new error types:
    1. Add the enum value here
    2. Map the raising exception in ``classify_error``
    """

    # Routing errors
    MALFORMED_PATH = "malformed_path"  # Unknown or missing provider segment
    POOL_NOT_CONFIGURED = "pool_not_configured"  # Rotation requested without keys

    # Rotation errors
    ROTATION_STORE = "rotation_store"  # Cursor store unavailable
    RATE_LIMIT = "rate_limit"  # Every rotation attempt was rate limited

    # Upstream errors
    UPSTREAM_TIMEOUT = "upstream_timeout"  # Upstream provider timeout
    UPSTREAM_ERROR = "upstream_error"  # Connection or protocol failure

    # Catch-all
    UNEXPECTED_ERROR = "unexpected_error"  # Unhandled/unexpected error


def classify_error(exc: BaseException) -> ErrorType:
    """Map an exception raised while proxying to its ErrorType."""
    if isinstance(exc, UnknownProviderError):
        return ErrorType.MALFORMED_PATH
    if isinstance(exc, PoolNotConfiguredError):
        return ErrorType.POOL_NOT_CONFIGURED
    if isinstance(exc, RotationStoreError):
        return ErrorType.ROTATION_STORE
    if isinstance(exc, UpstreamTransportError):
        return ErrorType.UPSTREAM_TIMEOUT if exc.timed_out else ErrorType.UPSTREAM_ERROR
    return ErrorType.UNEXPECTED_ERROR
