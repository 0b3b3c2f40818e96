"""
Embedder Tests

The gateway is replaced by httpx.MockTransport, so no network is used.
"""

import json

import httpx
import pytest

from cv_rag_server.core.errors import EmbeddingError, RetrievalError
from cv_rag_server.embeddings.embedder import Embedder


def make_embedder(handler, dimensions=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Embedder(
        api_key="test-key",
        model="openai/text-embedding-3-small",
        base_url="https://gateway.test/v1/",
        dimensions=dimensions,
        client=client,
    )


@pytest.mark.asyncio
async def test_embed_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 3]}]})

    vector = await make_embedder(handler).embed("python experience")

    assert vector == [0.1, 0.2, 3.0]
    assert seen["url"] == "https://gateway.test/v1/embeddings"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {"model": "openai/text-embedding-3-small", "input": "python experience"}


@pytest.mark.asyncio
async def test_http_error_raises_embedding_error():
    embedder = make_embedder(lambda request: httpx.Response(503, text="unavailable"))

    with pytest.raises(EmbeddingError):
        await embedder.embed("query")


@pytest.mark.asyncio
async def test_transport_error_raises_embedding_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RetrievalError):
        await make_embedder(handler).embed("query")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"nope": []},
        {"data": "not a list"},
        {"data": []},
        {"data": [{"embedding": [1.0, 2.0, 3.0]}, {"embedding": [1.0, 2.0, 3.0]}]},
        {"data": [{"vector": [1.0]}]},
        {"data": [{"embedding": ["a", "b", "c"]}]},
        {"data": [{"embedding": []}]},
    ],
)
async def test_malformed_response_rejected(body):
    embedder = make_embedder(lambda request: httpx.Response(200, json=body))

    with pytest.raises(EmbeddingError):
        await embedder.embed("query")


@pytest.mark.asyncio
async def test_non_json_response_rejected():
    embedder = make_embedder(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(EmbeddingError):
        await embedder.embed("query")


@pytest.mark.asyncio
async def test_dimension_mismatch_rejected():
    embedder = make_embedder(
        lambda request: httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2]}]}),
        dimensions=3,
    )

    with pytest.raises(EmbeddingError):
        await embedder.embed("query")


@pytest.mark.asyncio
async def test_empty_text_rejected_without_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})

    with pytest.raises(EmbeddingError):
        await make_embedder(handler).embed("")
    assert calls == []
