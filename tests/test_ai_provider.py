import json

import httpx
import pytest
import respx

from shapefit.config import settings
from shapefit.errors import AIInvocationFailure
from shapefit.services.ai_providers import OpenAIStylistProvider, get_provider


COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def chat_completion(content, finish_reason="stop"):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


async def _complete(provider, **kw):
    args = dict(system_prompt="sys", task_prompt="task", temperature=0.3, max_tokens=256)
    args.update(kw)
    return await provider.complete(**args)


@pytest.mark.asyncio
@respx.mock
async def test_complete_returns_text_and_sends_request():
    route = respx.post(COMPLETIONS_URL).mock(
        return_value=httpx.Response(200, json=chat_completion('  {"recommendations": []}\n'))
    )
    provider = OpenAIStylistProvider(api_key="sk-test", model="gpt-4o-mini")

    completion = await _complete(provider)

    assert completion.text == '{"recommendations": []}'
    assert completion.truncated is False
    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 256
    assert body["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "task"},
    ]


@pytest.mark.asyncio
@respx.mock
async def test_length_finish_reason_marks_truncation():
    respx.post(COMPLETIONS_URL).mock(
        return_value=httpx.Response(200, json=chat_completion('{"recommendations": [{"ind', "length"))
    )
    completion = await _complete(OpenAIStylistProvider(api_key="sk-test"))
    assert completion.truncated is True


@pytest.mark.asyncio
@respx.mock
async def test_image_refs_become_content_parts():
    route = respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(200, json=chat_completion("{}")))
    await _complete(OpenAIStylistProvider(api_key="sk-test"), image_refs=["https://cdn.example.com/a.jpg"])

    user = json.loads(route.calls.last.request.content)["messages"][1]
    assert user["content"] == [
        {"type": "text", "text": "task"},
        {"type": "image_url", "image_url": {"url": "https://cdn.example.com/a.jpg"}},
    ]


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize("status", [401, 429, 500])
async def test_http_errors_become_invocation_failures(status):
    respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(status, json={"error": {"message": "nope"}}))
    with pytest.raises(AIInvocationFailure):
        await _complete(OpenAIStylistProvider(api_key="sk-test"))


@pytest.mark.asyncio
@respx.mock
async def test_connection_errors_become_invocation_failures():
    respx.post(COMPLETIONS_URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(AIInvocationFailure):
        await _complete(OpenAIStylistProvider(api_key="sk-test"))


@pytest.mark.asyncio
@respx.mock
async def test_empty_choices_are_a_failure():
    payload = chat_completion("{}")
    payload["choices"] = []
    respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(200, json=payload))
    with pytest.raises(AIInvocationFailure):
        await _complete(OpenAIStylistProvider(api_key="sk-test"))


@pytest.mark.asyncio
async def test_missing_key_is_not_configured(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    provider = OpenAIStylistProvider()
    assert provider.configured is False
    with pytest.raises(AIInvocationFailure):
        await _complete(provider)


def test_get_provider(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    assert get_provider("none") is None
    assert get_provider("OFF") is None
    provider = get_provider("openai")
    assert isinstance(provider, OpenAIStylistProvider)
    assert provider.configured
