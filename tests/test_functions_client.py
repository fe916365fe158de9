"""
Functions client tests against a mocked transport.
"""

import httpx
import pytest

from copysensei.core.exceptions import RemoteServiceError
from copysensei.services.functions_client import FunctionsClient


def _client(handler) -> FunctionsClient:
    return FunctionsClient(
        base_url="http://functions.test/functions/v1/",
        api_key="test-key",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_generate_copy_posts_messages_and_context():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = request.content
        return httpx.Response(200, json={"generatedCopy": "Baked with love."})

    client = _client(handler)
    result = await client.generate_copy(
        [{"role": "user", "content": "Write a tagline"}],
        {"toneOfVoice": "friendly"},
    )

    assert result == "Baked with love."
    assert seen["url"] == "http://functions.test/functions/v1/generate-copy"
    assert seen["auth"] == "Bearer test-key"
    assert b'"toneOfVoice"' in seen["body"]


@pytest.mark.asyncio
async def test_error_status_raises_remote_service_error():
    client = _client(lambda request: httpx.Response(500, json={"error": "OpenAI API error: 429"}))

    with pytest.raises(RemoteServiceError) as exc_info:
        await client.generate_copy([{"role": "user", "content": "Write"}], {})

    assert exc_info.value.upstream_status == 500
    assert "OpenAI API error: 429" in exc_info.value.message


@pytest.mark.asyncio
async def test_error_body_with_success_status_raises():
    client = _client(lambda request: httpx.Response(200, json={"error": "Website URL is required"}))

    with pytest.raises(RemoteServiceError):
        await client.fetch_research("", None)


@pytest.mark.asyncio
async def test_missing_generated_copy_raises():
    client = _client(lambda request: httpx.Response(200, json={"generatedCopy": "  "}))

    with pytest.raises(RemoteServiceError):
        await client.generate_copy([{"role": "user", "content": "Write"}], {})


@pytest.mark.asyncio
async def test_non_json_body_raises():
    client = _client(lambda request: httpx.Response(200, text="<html>Bad gateway</html>"))

    with pytest.raises(RemoteServiceError):
        await client.generate_copy([{"role": "user", "content": "Write"}], {})


@pytest.mark.asyncio
async def test_network_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteServiceError) as exc_info:
        await _client(handler).generate_copy([{"role": "user", "content": "Write"}], {})

    assert exc_info.value.upstream_status is None


@pytest.mark.asyncio
async def test_fetch_research_returns_payload():
    research = {"audience_intelligence": {"primary": "Busy parents"}}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/fetch-research")
        return httpx.Response(200, json={"researchData": research})

    assert await _client(handler).fetch_research("https://cornerbakery.example", "Corner Bakery") == research
