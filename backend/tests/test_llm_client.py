"""
Tests for the LLM client against a mocked HTTP transport
"""
import json

import httpx
import pytest

from vitalwatch.services.llm_client import LLMClient, LLMError


def client_with(handler, api_key="test-key"):
    return LLMClient(
        api_url="https://llm.example.com/v1/",
        api_key=api_key,
        model="test-model",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_returns_completion_text():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Use a CDN."}}]})

    text = await client_with(handler).summarize("Average LCP: 3000ms")

    assert text == "Use a CDN."
    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["messages"][1] == {"role": "user", "content": "Average LCP: 3000ms"}


@pytest.mark.asyncio
async def test_error_status_raises():
    def handler(request):
        return httpx.Response(503, json={"error": "overloaded"})

    with pytest.raises(LLMError):
        await client_with(handler).summarize("prompt")


@pytest.mark.asyncio
async def test_malformed_response_raises():
    def handler(request):
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(LLMError):
        await client_with(handler).summarize("prompt")


@pytest.mark.asyncio
async def test_network_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LLMError):
        await client_with(handler).summarize("prompt")


@pytest.mark.asyncio
async def test_missing_api_key_raises_without_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(LLMError):
        await client_with(handler, api_key="").summarize("prompt")
