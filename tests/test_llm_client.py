"""
LLM Client Streaming Tests

Server-sent event bodies are served through httpx.MockTransport.
"""

import json

import httpx
import pytest

from cv_rag_server.core.errors import ProviderError
from cv_rag_server.llm.client import LLMClient, StreamEnd, TextDelta


def sse(*frames):
    lines = [f"data: {json.dumps(f)}" if not isinstance(f, str) else f"data: {f}" for f in frames]
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


def make_client(handler):
    return LLMClient(
        api_key="test-key",
        base_url="https://gateway.test/v1",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def collect(client, **kwargs):
    kwargs.setdefault("model", "anthropic/claude-opus-4-5")
    kwargs.setdefault("system_prompt", "You are a CV assistant.")
    kwargs.setdefault("messages", [{"role": "user", "content": "Hi"}])
    return [event async for event in client.stream_chat(**kwargs)]


@pytest.mark.asyncio
async def test_text_deltas_then_stream_end():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        body = sse(
            {"choices": [{"delta": {"role": "assistant"}}]},
            {"choices": [{"delta": {"content": "Chris has "}}]},
            {"choices": [{"delta": {"content": "8 years"}, "finish_reason": "stop"}]},
            "[DONE]",
        )
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    events = await collect(make_client(handler))

    assert events == [TextDelta("Chris has "), TextDelta("8 years"), StreamEnd("stop", [])]
    assert seen["url"] == "https://gateway.test/v1/chat/completions"
    assert seen["body"]["stream"] is True
    assert seen["body"]["messages"][0] == {"role": "system", "content": "You are a CV assistant."}
    assert "tools" not in seen["body"]


@pytest.mark.asyncio
async def test_tool_call_fragments_accumulated():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        body = sse(
            {"choices": [{"delta": {"tool_calls": [
                {"index": 0, "id": "call_1", "function": {"name": "searchCV", "arguments": ""}}
            ]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": '{"query": '}}]}}]},
            {"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"arguments": '"python"}'}}]}}]},
            {"choices": [{"delta": {}, "finish_reason": "tool_calls"}]},
            "[DONE]",
        )
        return httpx.Response(200, content=body)

    tools = [{"type": "function", "function": {"name": "searchCV"}}]
    events = await collect(make_client(handler), tools=tools, tool_choice="none")

    (end,) = events
    assert end.finish_reason == "tool_calls"
    assert len(end.tool_calls) == 1
    assert end.tool_calls[0].id == "call_1"
    assert end.tool_calls[0].name == "searchCV"
    assert json.loads(end.tool_calls[0].arguments) == {"query": "python"}
    assert seen["body"]["tool_choice"] == "none"


@pytest.mark.asyncio
async def test_http_error_status_raises_provider_error():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(ProviderError):
        await collect(client)


@pytest.mark.asyncio
async def test_transport_failure_raises_provider_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProviderError):
        await collect(make_client(handler))


@pytest.mark.asyncio
async def test_error_frame_raises_provider_error():
    body = sse({"choices": [{"delta": {"content": "partial"}}]}, {"error": {"message": "overloaded"}})
    client = make_client(lambda request: httpx.Response(200, content=body))

    with pytest.raises(ProviderError):
        await collect(client)


@pytest.mark.asyncio
async def test_malformed_frame_raises_provider_error():
    client = make_client(lambda request: httpx.Response(200, content=b"data: {oops\n\n"))

    with pytest.raises(ProviderError):
        await collect(client)
