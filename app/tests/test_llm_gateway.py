import json
import httpx
import pytest

from app.core.errors import ApiError, InvalidResponse, NetworkError
from app.services.llm_gateway import AzureOpenAIClient


def make_client(test_settings, handler):
    return AzureOpenAIClient(test_settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_complete_posts_to_deployment_and_returns_content(test_settings):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["api_key"] = request.headers.get("api-key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "hindi"}}]})

    client = make_client(test_settings, handler)
    reply = await client.complete("system", "user text", max_tokens=10, temperature=0.1)

    assert reply == "hindi"
    assert captured["url"] == (
        "https://unit-test.openai.azure.com/openai/deployments/gpt-4.1/chat/completions"
        "?api-version=2024-02-15-preview"
    )
    assert captured["api_key"] == "test-azure-key"
    assert captured["body"]["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user text"},
    ]
    assert captured["body"]["max_tokens"] == 10
    assert captured["body"]["temperature"] == 0.1


@pytest.mark.asyncio
async def test_complete_non_200_raises_api_error(test_settings):
    client = make_client(test_settings, lambda request: httpx.Response(429, text="rate limited"))

    with pytest.raises(ApiError) as exc_info:
        await client.complete("s", "u", max_tokens=5, temperature=0.0)
    assert exc_info.value.code == 429
    assert exc_info.value.detail == "rate limited"


@pytest.mark.asyncio
async def test_complete_undecodable_body_raises_invalid_response(test_settings):
    client = make_client(test_settings, lambda request: httpx.Response(200, text="not json"))

    with pytest.raises(InvalidResponse):
        await client.complete("s", "u", max_tokens=5, temperature=0.0)


@pytest.mark.asyncio
async def test_complete_missing_choices_raises_invalid_response(test_settings):
    client = make_client(test_settings, lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(InvalidResponse):
        await client.complete("s", "u", max_tokens=5, temperature=0.0)


@pytest.mark.asyncio
async def test_complete_timeout_raises_network_error(test_settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(test_settings, handler)
    with pytest.raises(NetworkError):
        await client.complete("s", "u", max_tokens=5, temperature=0.0)
