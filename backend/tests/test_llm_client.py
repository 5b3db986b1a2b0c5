import asyncio
import json

import httpx
import pytest

from hidrazy.llm_client import ChatCompletionClient, LLMError
from hidrazy.settings import settings


def _reply(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _run(coro):
    return asyncio.run(coro)


def test_missing_key_raises(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    with pytest.raises(ValueError):
        ChatCompletionClient()


def test_generate_sends_system_and_user_messages():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("Marhaba!"))

    async def go():
        client = ChatCompletionClient("sk-test", model="test-model", transport=httpx.MockTransport(handler))
        try:
            return await client.generate("Hello", system="Be kind", max_tokens=50, temperature=0.3)
        finally:
            await client.aclose()

    assert _run(go()) == "Marhaba!"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["payload"] == {
        "model": "test-model",
        "messages": [{"role": "system", "content": "Be kind"}, {"role": "user", "content": "Hello"}],
        "max_tokens": 50,
        "temperature": 0.3,
    }


def test_chat_prefers_max_completion_tokens():
    seen = {}

    def handler(request):
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json=_reply("ok"))

    async def go():
        client = ChatCompletionClient("sk-test", transport=httpx.MockTransport(handler))
        try:
            await client.chat([{"role": "user", "content": "hi"}], max_tokens=10, max_completion_tokens=200)
        finally:
            await client.aclose()

    _run(go())
    assert seen["payload"]["max_completion_tokens"] == 200
    assert "max_tokens" not in seen["payload"]


def test_upstream_error_raises_llm_error(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    async def go():
        client = ChatCompletionClient("sk-test", transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
        try:
            await client.generate("Hello")
        finally:
            await client.aclose()

    with pytest.raises(LLMError, match="LLM API error: 500"):
        _run(go())


def test_malformed_reply_raises_llm_error(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    async def go():
        client = ChatCompletionClient("sk-test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        try:
            await client.generate("Hello")
        finally:
            await client.aclose()

    with pytest.raises(LLMError, match="Unexpected LLM response"):
        _run(go())


def test_falls_back_to_openrouter(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
    monkeypatch.setattr(settings, "openrouter_model", "openai/gpt-4o-mini")
    hosts = []

    def handler(request):
        hosts.append(request.url.host)
        if request.url.host == "openrouter.ai":
            assert request.headers["Authorization"] == "Bearer or-key"
            assert json.loads(request.content)["model"] == "openai/gpt-4o-mini"
            return httpx.Response(200, json=_reply("from fallback"))
        return httpx.Response(503)

    async def go():
        client = ChatCompletionClient("sk-test", transport=httpx.MockTransport(handler))
        try:
            return await client.generate("Hello")
        finally:
            await client.aclose()

    assert _run(go()) == "from fallback"
    assert hosts == ["api.openai.com", "openrouter.ai"]
