from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping

import httpx
from fastapi.responses import StreamingResponse

# Connection-scoped headers that must not be copied between hops.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)


def forwardable_request_headers(headers: Iterable[tuple[str, str]]) -> httpx.Headers:
    """Copy inbound headers for the upstream hop.

    ``host`` is dropped so httpx derives it from the upstream URL; everything
    else, caller credentials included, is kept in order.
    """
    return httpx.Headers(
        [
            (name, value)
            for name, value in headers
            if name.lower() != "host" and name.lower() not in HOP_BY_HOP_HEADERS
        ]
    )


def has_request_body(headers: Mapping[str, str]) -> bool:
    """Whether the inbound request declared a body.

    Checked against the inbound headers, before hop-by-hop headers are dropped.
    """
    if "transfer-encoding" in headers:
        return True
    content_length = headers.get("content-length")
    return content_length is not None and content_length.strip() not in ("", "0")


async def _relay_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


def relay_upstream_response(upstream: httpx.Response) -> StreamingResponse:
    """Stream an upstream response back byte-for-byte.

    Raw (still encoded) chunks are relayed so ``content-encoding`` and
    ``content-length`` stay valid. The upstream connection is closed once the
    body has been sent or the client goes away.
    """
    response = StreamingResponse(_relay_body(upstream), status_code=upstream.status_code)
    response.raw_headers = [
        (name.lower(), value)
        for name, value in upstream.headers.raw
        if name.lower().decode("latin-1") not in HOP_BY_HOP_HEADERS
    ]
    return response
