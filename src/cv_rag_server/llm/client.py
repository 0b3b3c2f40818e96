"""
LLM Client

Streams chat completions from an OpenAI-compatible endpoint (the AI gateway
by default) over server-sent events. Text deltas are yielded as they arrive;
tool-call fragments are accumulated and reported once the completion ends.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import httpx

from ..config import settings
from ..core.errors import ProviderError

logger = logging.getLogger("cv.llm")


@dataclass
class ToolCall:
    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_message_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class TextDelta:
    text: str


@dataclass
class StreamEnd:
    finish_reason: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)


StreamEvent = Union[TextDelta, StreamEnd]


def _accumulate_tool_call_chunk(delta: Dict[str, Any], calls: List[ToolCall]) -> None:
    """Assemble incremental tool-call fragments into complete ToolCall objects."""
    index = delta.get("index", len(calls))

    while len(calls) <= index:
        calls.append(ToolCall())

    call = calls[index]
    if delta.get("id"):
        call.id += delta["id"]

    function = delta.get("function") or {}
    if function.get("name"):
        call.name += function["name"]
    if function.get("arguments"):
        call.arguments += function["arguments"]


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if api_key is None and settings.ai_gateway_api_key is not None:
            api_key = settings.ai_gateway_api_key.get_secret_value()
        self.api_key = api_key or ""
        self.url = (base_url or settings.ai_gateway_base_url).rstrip("/") + "/chat/completions"
        self.timeout = timeout if timeout is not None else settings.provider_timeout_s
        self._client = client

    async def stream_chat(
        self,
        model: str,
        system_prompt: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: str = "auto",
        temperature: Optional[float] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Yields TextDelta events, then exactly one StreamEnd carrying any
        completed tool calls, e.g.:

            TextDelta("Chris has "), TextDelta("8 years..."), StreamEnd("stop", [])

        Raises
        ------
        ProviderError
            On transport failure, a non-2xx status, or an error frame.
        """
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "system", "content": system_prompt}] + messages,
            "stream": True,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice

        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                async for event in self._stream(self._client, payload, headers):
                    yield event
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    async for event in self._stream(client, payload, headers):
                        yield event
        except httpx.HTTPError as exc:
            logger.error(
                "Chat completion request failed (%s): model=%s, error=%s",
                type(exc).__name__,
                model,
                str(exc),
            )
            raise ProviderError(f"Chat completion failed: {type(exc).__name__}") from exc

    async def _stream(
        self,
        client: httpx.AsyncClient,
        payload: Dict[str, Any],
        headers: Dict[str, str],
    ) -> AsyncIterator[StreamEvent]:
        tool_calls: List[ToolCall] = []
        finish_reason: Optional[str] = None

        async with client.stream(
            "POST", self.url, json=payload, headers=headers, timeout=self.timeout
        ) as response:
            if response.status_code >= 400:
                body = (await response.aread()).decode("utf-8", errors="replace")
                logger.error(
                    "Chat completion returned HTTP %d: %s",
                    response.status_code,
                    body[:500],
                )
                raise ProviderError(
                    f"Chat completion failed with HTTP {response.status_code}"
                )

            async for line in response.aiter_lines():
                line = line.strip()
                if not line.startswith("data:"):
                    continue

                data = line[len("data:"):].strip()
                if data == "[DONE]":
                    break

                try:
                    chunk = json.loads(data)
                except ValueError as exc:
                    raise ProviderError("Malformed stream frame from provider.") from exc

                if not isinstance(chunk, dict):
                    raise ProviderError("Malformed stream frame from provider.")
                if chunk.get("error"):
                    raise ProviderError(f"Provider stream error: {chunk['error']}")

                choices = chunk.get("choices") or []
                if not choices:
                    continue

                choice = choices[0]
                delta = choice.get("delta") or {}

                if delta.get("content"):
                    yield TextDelta(delta["content"])

                for tc in delta.get("tool_calls") or []:
                    _accumulate_tool_call_chunk(tc, tool_calls)

                if choice.get("finish_reason"):
                    finish_reason = choice["finish_reason"]

        yield StreamEnd(
            finish_reason=finish_reason,
            tool_calls=[tc for tc in tool_calls if tc.name],
        )
