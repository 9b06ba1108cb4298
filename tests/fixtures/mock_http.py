"""RESPX-based HTTP mocking fixtures for testing.

One router fixture per upstream host. Routers are created with
``assert_all_called=False`` so a test can register routes it expects the
proxy never to reach and then assert on ``calls``.
"""

import httpx
import pytest
import respx

from tests.config import TEST_ENDPOINTS


@pytest.fixture
def openai_chat_completion():
    """Minimal OpenAI chat completion body."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello!"},
                "finish_reason": "stop",
            }
        ],
    }


@pytest.fixture
def gemini_generate_content():
    """Minimal Gemini generateContent body."""
    return {
        "candidates": [{"content": {"parts": [{"text": "Hello!"}], "role": "model"}}],
    }


# === Upstream routers ===


@pytest.fixture
def mock_openai_api():
    """Mock api.openai.com.

    Usage:
        def test_chat(mock_openai_api):
            route = mock_openai_api.post("/v1/chat/completions").respond(200, json={})
    """
    with respx.mock(base_url=TEST_ENDPOINTS["openai"], assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_anthropic_api():
    """Mock api.anthropic.com."""
    with respx.mock(base_url=TEST_ENDPOINTS["claude"], assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_gemini_api():
    """Mock generativelanguage.googleapis.com."""
    with respx.mock(base_url=TEST_ENDPOINTS["gemini"], assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_any_upstream():
    """Catch every outbound request; any call fails the test's call-count checks."""
    with respx.mock(assert_all_called=False) as respx_mock:
        respx_mock.route().respond(599, text="should not be reached")
        yield respx_mock


# === Helper Functions ===


def rate_limited(body: str = "rate limited") -> httpx.Response:
    """Upstream 429 with a plain-text body."""
    return httpx.Response(429, text=body, headers={"retry-after": "1"})


def used_bearer(call) -> str:
    """The bearer token an upstream call was sent with."""
    return call.request.headers["authorization"].removeprefix("Bearer ")
