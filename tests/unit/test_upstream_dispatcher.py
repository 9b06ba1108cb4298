import httpx
import pytest
import pytest_asyncio

from ai_gateway.api.services.upstream_dispatcher import (
    OutboundRequest,
    UpstreamDispatcher,
    effective_max_attempts,
)
from ai_gateway.core.exceptions import UpstreamTransportError
from ai_gateway.core.provider import DEFAULT_PROVIDERS
from tests.fixtures.mock_http import rate_limited, used_bearer

OPENAI = DEFAULT_PROVIDERS["openai"]
GEMINI = DEFAULT_PROVIDERS["gemini"]
POOL = ("k1", "k2", "k3")


def chat_request(url: str = "https://api.openai.com/v1/chat/completions") -> OutboundRequest:
    return OutboundRequest(
        method="POST",
        url=httpx.URL(url),
        headers=httpx.Headers({"authorization": "Bearer master", "content-type": "application/json"}),
        content=b'{"model": "gpt-4o-mini"}',
    )


@pytest_asyncio.fixture
async def dispatcher():
    async with httpx.AsyncClient() as client:
        yield UpstreamDispatcher(client)


@pytest.mark.unit
class TestEffectiveMaxAttempts:
    @pytest.mark.parametrize(
        "limit,pool_size,expected", [(5, 3, 3), (2, 3, 2), (1, 10, 1), (50, 1, 1)]
    )
    def test_bounded_by_pool_size(self, limit, pool_size, expected):
        assert effective_max_attempts(limit, pool_size) == expected

    @pytest.mark.parametrize("limit", [0, -1, True, 2.5])
    def test_limit_must_be_positive_integer(self, limit):
        with pytest.raises(ValueError):
            effective_max_attempts(limit, 3)


@pytest.mark.unit
@pytest.mark.asyncio
class TestDispatchWithRotation:
    async def test_first_success_uses_one_call(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions").respond(200, json={"ok": True})

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 5)

        assert result.response.status_code == 200
        assert result.attempts == 1
        assert not result.exhausted
        assert route.call_count == 1
        assert used_bearer(route.calls[0]) == "k1"
        await result.response.aclose()

    async def test_rotates_on_rate_limit_from_start_cursor(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions")
        route.side_effect = [rate_limited("k3 limited"), httpx.Response(200, text="ok")]

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 2, 5)

        assert result.response.status_code == 200
        assert result.cursors == [2, 0]
        assert [used_bearer(call) for call in route.calls] == ["k3", "k1"]
        await result.response.aclose()

    async def test_every_attempt_replays_identical_body(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions")
        route.side_effect = [rate_limited(), rate_limited(), httpx.Response(200)]

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 5)

        assert {call.request.content for call in route.calls} == {b'{"model": "gpt-4o-mini"}'}
        assert {call.request.method for call in route.calls} == {"POST"}
        await result.response.aclose()

    async def test_exhaustion_returns_last_429_verbatim(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions")
        route.side_effect = [rate_limited("first"), rate_limited("second"), rate_limited("third")]

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 5)

        assert result.exhausted
        assert result.attempts == 3
        assert result.response.status_code == 429
        assert (await result.response.aread()) == b"third"
        await result.response.aclose()

    async def test_attempts_bounded_by_limit(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions").mock(return_value=rate_limited())

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 1, 2)

        assert route.call_count == 2
        assert result.cursors == [1, 2]
        await result.response.aclose()

    async def test_non_429_error_is_returned_immediately(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions")
        route.side_effect = [httpx.Response(401, json={"error": "bad key"}), httpx.Response(200)]

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 5)

        assert result.response.status_code == 401
        assert route.call_count == 1
        await result.response.aclose()

    async def test_transport_error_keeps_previous_429(self, dispatcher, mock_openai_api):
        route = mock_openai_api.post("/v1/chat/completions")
        route.side_effect = [rate_limited("limited"), httpx.ConnectError("refused")]

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 2)

        assert result.exhausted
        assert result.response.status_code == 429
        assert (await result.response.aread()) == b"limited"
        await result.response.aclose()

    async def test_transport_errors_only_leave_no_response(self, dispatcher, mock_openai_api):
        mock_openai_api.post("/v1/chat/completions").mock(side_effect=httpx.ConnectError("down"))

        result = await dispatcher.dispatch_with_rotation(chat_request(), OPENAI, POOL, 0, 5)

        assert result.exhausted
        assert result.response is None
        assert result.attempts == 3

    async def test_gemini_key_moves_from_query_to_header(self, dispatcher, mock_gemini_api):
        route = mock_gemini_api.post("/v1beta/models/gemini-pro:generateContent").respond(200)
        outbound = chat_request(
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
            "?key=master&alt=sse"
        )

        result = await dispatcher.dispatch_with_rotation(outbound, GEMINI, ("g1", "g2"), 1, 5)

        sent = route.calls[0].request
        assert sent.headers["x-goog-api-key"] == "g2"
        assert "key" not in sent.url.params
        assert sent.url.params["alt"] == "sse"
        await result.response.aclose()

    async def test_template_is_not_mutated(self, dispatcher, mock_openai_api):
        mock_openai_api.post("/v1/chat/completions").respond(200)
        outbound = chat_request()

        result = await dispatcher.dispatch_with_rotation(outbound, OPENAI, POOL, 0, 5)

        assert outbound.headers["authorization"] == "Bearer master"
        await result.response.aclose()


@pytest.mark.unit
@pytest.mark.asyncio
class TestSend:
    async def test_connect_error_maps_to_502(self, dispatcher, mock_openai_api):
        mock_openai_api.get("/v1/models").mock(side_effect=httpx.ConnectError("refused"))
        outbound = OutboundRequest("GET", httpx.URL("https://api.openai.com/v1/models"), httpx.Headers())

        with pytest.raises(UpstreamTransportError) as exc_info:
            await dispatcher.send(outbound)

        assert exc_info.value.status_code == 502
        assert not exc_info.value.timed_out

    async def test_timeout_maps_to_504(self, dispatcher, mock_openai_api):
        mock_openai_api.get("/v1/models").mock(side_effect=httpx.ReadTimeout("slow"))
        outbound = OutboundRequest("GET", httpx.URL("https://api.openai.com/v1/models"), httpx.Headers())

        with pytest.raises(UpstreamTransportError) as exc_info:
            await dispatcher.send(outbound)

        assert exc_info.value.status_code == 504
        assert exc_info.value.timed_out
