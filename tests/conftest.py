import asyncio
import copy
from typing import Any, Dict, List

import pytest

from cv_rag_server.config import settings
from cv_rag_server.embeddings.index import InMemoryVectorStore
from cv_rag_server.embeddings.models import ChunkMetadata, ContentChunk
from cv_rag_server.llm.client import StreamEnd, TextDelta, ToolCall


class ScriptedLLM:
    """
    Stand-in for LLMClient.stream_chat.

    Each script step is a list of events: TextDelta/StreamEnd are yielded,
    a float sleeps for that many seconds, an Exception is raised.
    """

    def __init__(self, script: List[List[Any]]):
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []

    async def stream_chat(self, **kwargs):
        self.calls.append(copy.deepcopy(kwargs))
        step = self.script.pop(0) if self.script else [TextDelta("done"), StreamEnd("stop")]
        for event in step:
            if isinstance(event, float):
                await asyncio.sleep(event)
            elif isinstance(event, Exception):
                raise event
            else:
                yield event


class FakeEmbedder:
    """Maps known queries to fixed vectors; everything else to the zero-th axis."""

    def __init__(self, vectors: Dict[str, List[float]] = None, error: Exception = None):
        self.vectors = vectors or {}
        self.error = error
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vectors.get(text, [1.0, 0.0, 0.0])


def tool_call_step(query: str, call_id: str = "call_1", text: str = "") -> List[Any]:
    events: List[Any] = [TextDelta(text)] if text else []
    events.append(
        StreamEnd(
            "tool_calls",
            [ToolCall(id=call_id, name="searchCV", arguments=f'{{"query": "{query}"}}')],
        )
    )
    return events


def chunk(content: str, node_id: str, embedding: List[float], category: str = "experience") -> ContentChunk:
    return ContentChunk(
        content=content,
        metadata=ChunkMetadata(node_id=node_id, category=category),
        embedding=embedding,
    )


@pytest.fixture
def cv_store() -> InMemoryVectorStore:
    # Similarities against [1, 0, 0]: 1.0, 0.6, 0.0
    return InMemoryVectorStore([
        chunk("Eight years of Python backend work.", "NODE_01", [1.0, 0.0, 0.0]),
        chunk("Led a TypeScript migration.", "NODE_02", [0.6, 0.8, 0.0], category="projects"),
        chunk("Enjoys hiking.", "NODE_03", [0.0, 0.0, 1.0], category="personal"),
    ])


@pytest.fixture
def configured(monkeypatch):
    from pydantic import SecretStr

    monkeypatch.setattr(settings, "database_url", "postgresql://user:pw@localhost/cv")
    monkeypatch.setattr(settings, "ai_gateway_api_key", SecretStr("test-key"))
    return settings


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "database_url", None)
    monkeypatch.setattr(settings, "ai_gateway_api_key", None)
    return settings
