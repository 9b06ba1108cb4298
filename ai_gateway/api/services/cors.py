"""Permissive cross-origin headers stamped on every proxied response."""

from starlette.responses import Response

from ai_gateway.core.provider.credentials import (
    ANTHROPIC_API_KEY_HEADER,
    GOOGLE_API_KEY_HEADER,
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, OPTIONS",
    "Access-Control-Allow-Headers": (
        f"Content-Type, Authorization, {ANTHROPIC_API_KEY_HEADER}, {GOOGLE_API_KEY_HEADER}, "
        "anthropic-version, openai-organization"
    ),
}


def apply_cors_headers(response: Response) -> Response:
    """Add the CORS headers unless the response already carries an origin policy."""
    if "access-control-allow-origin" not in response.headers:
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
    return response


def preflight_response() -> Response:
    """Answer an OPTIONS request without contacting the upstream."""
    return Response(status_code=204, headers=CORS_HEADERS)
