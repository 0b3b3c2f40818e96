"""
CV Search Tool

This module implements the LLM tool `searchCV`, the core retrieval step of
the agent. Each invocation:

1. Embeds the query text
2. Runs a similarity search against the vector store
3. Returns the matching CV sections with rounded similarity scores

The model may call this tool several times within one turn.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .definitions import MAX_SEARCH_RESULTS
from ..agent.config import AgentConfig, DEFAULT_AGENT_CONFIG
from ..embeddings.models import EmbeddingService, VectorSearchBackend

logger = logging.getLogger("cv.tools")

UNKNOWN_NODE_ID = "UNKNOWN"
DEFAULT_CATEGORY = "general"


# ---------------------------------------------------------------------
# Tool Input / Output Contracts
# ---------------------------------------------------------------------

class CVSearchInput(BaseModel):
    """
    Arguments the model may pass to `searchCV`.
    """
    # Strict: model-supplied arguments must match the advertised JSON schema
    query: str = Field(..., min_length=1, strict=True)
    max_results: Optional[int] = Field(
        default=None,
        ge=1,
        le=MAX_SEARCH_RESULTS,
        alias="maxResults",
        strict=True,
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CVSearchDocument(BaseModel):
    node_id: str = Field(..., alias="nodeId")
    content: str
    category: str
    similarity: float

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CVSearchResult(BaseModel):
    """
    Tool output. `documents` is always a list, empty when nothing matched.
    """
    query: str
    found: bool
    documents: List[CVSearchDocument] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_tool_output(self) -> dict:
        """JSON-ready dict using the camelCase names the model sees."""
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------
# Main Search Tool
# ---------------------------------------------------------------------

async def tool_search_cv(
    query: str,
    embedder: EmbeddingService,
    vector_store: VectorSearchBackend,
    max_results: Optional[int] = None,
    config: AgentConfig = DEFAULT_AGENT_CONFIG,
) -> CVSearchResult:
    """
    Semantic search over the CV, callable by the LLM.

    Parameters
    ----------
    query : str
        Non-empty search query.

    embedder : EmbeddingService
        Produces the query embedding.

    vector_store : VectorSearchBackend
        Store searched with the configured similarity threshold.

    max_results : Optional[int]
        Result bound; defaults to config.default_search_limit.

    config : AgentConfig
        Source of the default limit and the similarity threshold.

    Returns
    -------
    CVSearchResult
        `found=False` with an empty document list when nothing passes the threshold.

    Raises
    ------
    RetrievalError
        If embedding or search fails. Results are never fabricated.
    """
    limit = max_results if max_results is not None else config.default_search_limit

    embedding = await embedder.embed(query)

    results = await vector_store.search(
        embedding,
        limit=limit,
        threshold=config.similarity_threshold,
    )

    logger.debug("searchCV query=%r matched %d documents", query, len(results))

    if not results:
        return CVSearchResult(query=query, found=False, documents=[])

    return CVSearchResult(
        query=query,
        found=True,
        documents=[
            CVSearchDocument(
                node_id=r.metadata.node_id or UNKNOWN_NODE_ID,
                content=r.content,
                category=r.metadata.category or DEFAULT_CATEGORY,
                similarity=round(r.similarity, 3),
            )
            for r in results
        ],
    )
