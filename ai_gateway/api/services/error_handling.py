"""Error responses returned by the proxy itself.

Upstream answers are relayed untouched, so there is no structured error
envelope to stay compatible with. Everything the gateway says on its own
behalf is a short plain-text body.
"""

from dataclasses import dataclass

from fastapi.responses import PlainTextResponse

from ai_gateway.core.exceptions import GatewayError

RATE_LIMIT_STATUS = 429
EXHAUSTED_MESSAGE = "All API keys have exceeded their quota, please try again later"


@dataclass(frozen=True, slots=True)
class ErrorResponseBuilder:
    """Centralized builder for the gateway's own error responses."""

    @staticmethod
    def from_error(error: GatewayError) -> PlainTextResponse:
        """Render a GatewayError with its own status and message."""
        return PlainTextResponse(error.message, status_code=error.status_code)

    @staticmethod
    def rotation_exhausted() -> PlainTextResponse:
        """Build the 429 returned when no rotation attempt produced a response.

        Uses the same status as a relayed upstream rate limit so callers see
        one exhaustion contract.
        """
        return PlainTextResponse(EXHAUSTED_MESSAGE, status_code=RATE_LIMIT_STATUS)

    @staticmethod
    def internal_error(message: str | None = None) -> PlainTextResponse:
        return PlainTextResponse(
            message or "An unexpected error occurred.",
            status_code=500,
        )
