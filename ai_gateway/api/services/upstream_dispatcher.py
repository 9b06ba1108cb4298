"""Upstream sends and the retry-on-rate-limit rotation loop."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Sequence
from dataclasses import dataclass, field

import httpx

from ai_gateway.api.services.error_handling import RATE_LIMIT_STATUS
from ai_gateway.core.exceptions import UpstreamTransportError
from ai_gateway.core.provider.credentials import inject_credential
from ai_gateway.core.provider.provider_registry import Provider

logger = logging.getLogger(__name__)

DEFAULT_ROTATION_LIMIT = 5

RequestContent = bytes | AsyncIterable[bytes] | None


def effective_max_attempts(limit: int, pool_size: int) -> int:
    """Bound the number of rotation attempts by the pool size.

    Raises:
        ValueError: If limit is not a positive integer.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"rotation limit must be a positive integer, got {limit!r}")
    return min(limit, max(pool_size, 0))


@dataclass
class OutboundRequest:
    """Template for one upstream request.

    Rotation attempts copy the template, so ``content`` must be bytes there;
    a streamed body can only be sent once.
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers
    content: RequestContent = None

    def copy(self) -> OutboundRequest:
        return OutboundRequest(
            method=self.method,
            url=self.url,
            headers=self.headers.copy(),
            content=self.content,
        )


@dataclass
class RetryState:
    """Progress of one rotation loop."""

    cursor: int
    max_attempts: int
    attempts: int = 0
    last_response: httpx.Response | None = None


@dataclass
class DispatchResult:
    """Outcome of a rotation loop.

    Attributes:
        response: The response to relay. None only when no attempt produced a
            response at all.
        attempts: Number of upstream sends made
        cursors: Pool indexes tried, in order
        exhausted: True when every permitted attempt was rate limited or failed
    """

    response: httpx.Response | None
    attempts: int
    cursors: list[int] = field(default_factory=list)
    exhausted: bool = False


class UpstreamDispatcher:
    """Sends requests to upstream providers over a shared httpx client.

    Responsibilities:
    - Send one request and surface transport failures as UpstreamTransportError
    - Run the rotation loop: inject pool keys, retry on 429 and transport errors

    Responses are opened in streaming mode. Whoever receives a response owns
    it and must close it (relay_upstream_response does).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def send(self, outbound: OutboundRequest) -> httpx.Response:
        """Send one request and return the streamed response.

        Raises:
            UpstreamTransportError: If the upstream could not be reached.
        """
        request = self.client.build_request(
            outbound.method,
            outbound.url,
            headers=outbound.headers,
            content=outbound.content,
        )
        try:
            return await self.client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise UpstreamTransportError(outbound.url.host, e, timed_out=True) from e
        except httpx.TransportError as e:
            raise UpstreamTransportError(outbound.url.host, e) from e

    async def dispatch_with_rotation(
        self,
        outbound: OutboundRequest,
        provider: Provider,
        pool: Sequence[str],
        start_cursor: int,
        max_attempts: int = DEFAULT_ROTATION_LIMIT,
    ) -> DispatchResult:
        """Try pool keys in round-robin order until one is not rate limited.

        Args:
            outbound: Request template; its body must be replayable bytes
            provider: Decides how the key is written into the request
            pool: Ordered upstream keys
            start_cursor: Pool index of the first key to try
            max_attempts: Configured attempt limit, clamped to the pool size

        Returns:
            A DispatchResult. A non-429 response ends the loop at once. When
            every attempt is used up the last 429 response is returned; if no
            attempt got a response, ``response`` is None.
        """
        pool_size = len(pool)
        state = RetryState(
            cursor=start_cursor % pool_size if pool_size else 0,
            max_attempts=effective_max_attempts(max_attempts, pool_size),
        )
        cursors: list[int] = []

        while state.attempts < state.max_attempts:
            attempt = outbound.copy()
            attempt.url = inject_credential(provider, attempt.headers, attempt.url, pool[state.cursor])
            cursors.append(state.cursor)
            state.attempts += 1

            try:
                response = await self.send(attempt)
            except UpstreamTransportError as e:
                logger.warning(
                    f"{provider.name} key #{state.cursor} attempt "
                    f"{state.attempts}/{state.max_attempts} failed: {e.message}"
                )
            else:
                if response.status_code != RATE_LIMIT_STATUS:
                    if state.last_response is not None:
                        await state.last_response.aclose()
                    logger.debug(
                        f"{provider.name} key #{state.cursor} answered {response.status_code} "
                        f"after {state.attempts} attempt(s)"
                    )
                    return DispatchResult(response=response, attempts=state.attempts, cursors=cursors)

                logger.info(
                    f"{provider.name} key #{state.cursor} rate limited "
                    f"({state.attempts}/{state.max_attempts}), trying next key"
                )
                if state.last_response is not None:
                    await state.last_response.aclose()
                state.last_response = response

            state.cursor = (state.cursor + 1) % pool_size

        logger.warning(
            f"All {state.attempts} rotation attempt(s) for {provider.name} were exhausted"
        )
        return DispatchResult(
            response=state.last_response,
            attempts=state.attempts,
            cursors=cursors,
            exhausted=True,
        )
