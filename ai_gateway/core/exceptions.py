"""
Exception hierarchy for the gateway.

All gateway exceptions inherit from GatewayError, which carries the HTTP
status the proxy answers with. The proxy engine catches GatewayError at its
boundary and renders it as a plain-text response.

Example:
    >>> try:
    ...     await engine.handle(request)
    ... except GatewayError as e:
    ...     print(e.status_code, e.message)
"""

from __future__ import annotations

# Reserved statuses outside the standard registry so callers can tell proxy
# routing failures apart from upstream answers.
STATUS_MALFORMED_PATH = 325
STATUS_POOL_NOT_CONFIGURED = 326


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        status_code: HTTP status returned to the caller
        message: Human-readable text used as the response body
        log_to_metrics: Whether the failed request is reported to the metrics sink
    """

    status_code: int = 500
    log_to_metrics: bool = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ClientInputError(GatewayError):
    """Raised for requests the proxy refuses before any upstream call.

    These are never retried and never reported to the metrics sink, which
    keeps malformed traffic out of the metrics.
    """

    status_code = 400
    log_to_metrics = False


class UnknownProviderError(ClientInputError):
    """Raised when the first path segment does not name a known provider."""

    status_code = STATUS_MALFORMED_PATH

    def __init__(self, segment: str | None) -> None:
        self.segment = segment
        if segment:
            message = f"Malformed URL: unknown provider '{segment}'"
        else:
            message = "Malformed URL: expected /<provider>/<path>"
        super().__init__(message)


class PoolNotConfiguredError(ClientInputError):
    """Raised when the master key was presented but the provider has no key pool."""

    status_code = STATUS_POOL_NOT_CONFIGURED

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"Rotation API keys are not configured for '{provider_name}'")


class RotationStoreError(GatewayError):
    """Raised when the rotation cursor store is unavailable or fails.

    Attributes:
        provider_name: Provider whose cursor could not be advanced
        cause: The underlying exception
    """

    status_code = 500

    def __init__(self, provider_name: str, cause: BaseException) -> None:
        self.provider_name = provider_name
        self.cause = cause
        super().__init__(f"Rotation store error for '{provider_name}': {cause}")

    def __repr__(self) -> str:
        return f"RotationStoreError(provider_name={self.provider_name!r}, cause={self.cause!r})"


class UpstreamTransportError(GatewayError):
    """Raised when the upstream could not be reached or the connection broke.

    Attributes:
        host: Upstream host the request was sent to
        timed_out: True when the failure was a timeout
    """

    status_code = 502

    def __init__(self, host: str, cause: BaseException, timed_out: bool = False) -> None:
        self.host = host
        self.cause = cause
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504
            message = f"Upstream request to {host} timed out. Consider increasing REQUEST_TIMEOUT."
        else:
            message = f"Upstream service error while contacting {host}: {cause}"
        super().__init__(message)


class ObservabilitySinkError(GatewayError):
    """Raised by metrics sinks. Always swallowed by the emitter."""
