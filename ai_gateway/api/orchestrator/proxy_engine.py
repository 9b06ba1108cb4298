"""Request routing and credential rotation for every proxied call.

The ProxyEngine owns the lifecycle of one inbound request:

    Received -> Validated -> (RotationLoop | PassThrough) -> Dispatched
             -> CorsApplied -> Logged -> Returned

Upstream responses are relayed untouched. The engine only produces its own
body for routing failures, an exhausted rotation with nothing to relay, and
internal errors.
"""

from __future__ import annotations

import logging
import secrets
import time
import uuid
from urllib.parse import unquote

import httpx
from fastapi import Request
from starlette.responses import Response

from ai_gateway.api.services.cors import apply_cors_headers, preflight_response
from ai_gateway.api.services.error_handling import ErrorResponseBuilder
from ai_gateway.api.services.observability import ObservabilityEmitter, RequestSummary
from ai_gateway.api.services.streaming import (
    forwardable_request_headers,
    has_request_body,
    relay_upstream_response,
)
from ai_gateway.api.services.upstream_dispatcher import OutboundRequest, UpstreamDispatcher
from ai_gateway.core.config import GatewayConfig
from ai_gateway.core.error_types import ErrorType, classify_error
from ai_gateway.core.exceptions import (
    GatewayError,
    PoolNotConfiguredError,
    UnknownProviderError,
)
from ai_gateway.core.logging import correlation_context
from ai_gateway.core.provider import Provider, ProviderRegistry, extract_credential
from ai_gateway.core.provider.rotation_counter import RotationCounter

logger = logging.getLogger(__name__)


def split_path(raw_path: str) -> list[str]:
    """Non-empty path segments, still percent-encoded."""
    return [segment for segment in raw_path.split("/") if segment]


class ProxyEngine:
    """Routes one inbound request to its provider and relays the answer.

    Responsibilities:
    1. Validate the provider prefix (325 on failure, no upstream call)
    2. Answer CORS preflights locally
    3. Decide between rotation and pass-through from the caller's credential
    4. Run the rotation loop or a single pass-through send
    5. Stamp CORS headers and report a RequestSummary

    The engine holds only references to shared, immutable collaborators and
    keeps no per-request state on ``self``.
    """

    def __init__(
        self,
        config: GatewayConfig,
        registry: ProviderRegistry,
        counter: RotationCounter,
        dispatcher: UpstreamDispatcher,
        emitter: ObservabilityEmitter,
    ) -> None:
        self.config = config
        self.registry = registry
        self.counter = counter
        self.dispatcher = dispatcher
        self.emitter = emitter

    async def handle(self, request: Request) -> Response:
        """Proxy one request. Never raises; every failure becomes a response.

        The correlation id covers routing, dispatch and the metrics summary.
        The upstream body is relayed by Starlette after this returns, so log
        records emitted while it streams carry no request id.
        """
        with correlation_context(str(uuid.uuid4())):
            return await self._handle(request)

    async def _handle(self, request: Request) -> Response:
        start_time = time.perf_counter()
        raw_path = self._raw_path(request)
        segments = split_path(raw_path)

        provider = self.registry.resolve(segments[0]) if segments else None
        if provider is None:
            error = UnknownProviderError(segments[0] if segments else None)
            logger.info(f"Rejected {request.method} {raw_path}: {error.message}")
            return apply_cors_headers(ErrorResponseBuilder.from_error(error))

        summary = RequestSummary(provider=provider.name)

        if request.method == "OPTIONS":
            response = preflight_response()
        else:
            body = None
            if self.emitter.needs_body(provider.name, request.method):
                body = await self._read_body_for_metrics(request)
            summary.model = self.emitter.extract_model(
                provider.name,
                [unquote(segment) for segment in segments[1:]],
                request.method,
                body,
            )

            try:
                response = await self._dispatch(request, provider, raw_path, summary)
            except GatewayError as e:
                if not e.log_to_metrics:
                    logger.info(f"Rejected {request.method} {raw_path}: {e.message}")
                    return apply_cors_headers(ErrorResponseBuilder.from_error(e))
                logger.error(f"{provider.name} request failed: {e.message}")
                summary.error = e.message
                summary.error_type = classify_error(e)
                response = ErrorResponseBuilder.from_error(e)
            except Exception as e:
                logger.exception(f"Unexpected error proxying {request.method} {raw_path}")
                summary.error = str(e) or type(e).__name__
                summary.error_type = ErrorType.UNEXPECTED_ERROR
                response = ErrorResponseBuilder.internal_error(str(e) or None)

        apply_cors_headers(response)

        summary.status = response.status_code
        summary.latency_ms = (time.perf_counter() - start_time) * 1000
        self.emitter.emit(summary)
        return response

    async def _dispatch(
        self,
        request: Request,
        provider: Provider,
        raw_path: str,
        summary: RequestSummary,
    ) -> Response:
        url = self._upstream_url(request, provider, raw_path)
        headers = forwardable_request_headers(request.headers.items())

        if self._is_rotation_request(request, provider):
            return await self._rotate(request, provider, url, headers, summary)
        return await self._pass_through(request, url, headers)

    def _is_rotation_request(self, request: Request, provider: Provider) -> bool:
        master_key = self.config.master_key
        if not master_key:
            return False
        credential = extract_credential(provider, request.headers, str(request.url))
        if credential is None:
            return False
        return secrets.compare_digest(credential.encode(), master_key.encode())

    async def _rotate(
        self,
        request: Request,
        provider: Provider,
        url: httpx.URL,
        headers: httpx.Headers,
        summary: RequestSummary,
    ) -> Response:
        pool = self.config.key_pool(provider.name)
        if not pool:
            raise PoolNotConfiguredError(provider.name)

        cursor = await self.counter.advance(provider.name, len(pool))
        # Buffered once so every attempt replays identical bytes.
        body = await request.body() if has_request_body(request.headers) else None
        outbound = OutboundRequest(request.method, url, headers, body)

        logger.debug(f"Rotating {provider.name} keys from index {cursor} (pool of {len(pool)})")
        result = await self.dispatcher.dispatch_with_rotation(
            outbound, provider, pool, cursor, self.config.rotation_limit
        )

        if result.exhausted:
            summary.error_type = ErrorType.RATE_LIMIT
        if result.response is None:
            return ErrorResponseBuilder.rotation_exhausted()
        return relay_upstream_response(result.response)

    async def _pass_through(
        self, request: Request, url: httpx.URL, headers: httpx.Headers
    ) -> Response:
        content = request.stream() if has_request_body(request.headers) else None
        upstream = await self.dispatcher.send(OutboundRequest(request.method, url, headers, content))
        return relay_upstream_response(upstream)

    @staticmethod
    async def _read_body_for_metrics(request: Request) -> bytes | None:
        if not has_request_body(request.headers):
            return None
        try:
            return await request.body()
        except Exception as e:
            logger.debug(f"Could not read request body for model extraction: {e}")
            return None

    @staticmethod
    def _raw_path(request: Request) -> str:
        raw = request.scope.get("raw_path")
        if raw:
            return raw.split(b"?", 1)[0].decode("latin-1")
        return request.url.path

    @staticmethod
    def _upstream_url(request: Request, provider: Provider, raw_path: str) -> httpx.URL:
        """Swap the authority for the provider host and drop the provider segment."""
        _, _, rest = raw_path.lstrip("/").partition("/")
        upstream_path = "/" + rest
        query = request.scope.get("query_string", b"").decode("latin-1")
        url = f"https://{provider.host}{upstream_path}"
        if query:
            url = f"{url}?{query}"
        return httpx.URL(url)
