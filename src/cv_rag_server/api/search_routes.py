"""
Search Routes

Direct access to the `searchCV` tool, for clients that want raw retrieval
results without going through the model.
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from ..agent.config import AgentConfig
from ..config import Settings
from ..db import PgVectorStore
from ..embeddings.embedder import Embedder
from ..tools.search_tools import CVSearchInput, CVSearchResult, tool_search_cv
from .dependencies import (
    get_agent_config,
    get_embedder,
    get_vector_store,
    require_configuration,
)

router = APIRouter(prefix="/search", tags=["search"])


@router.post(
    "/",
    response_model=CVSearchResult,
    summary="Semantic search over the CV",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: CVSearchInput,
    _: Annotated[Settings, Depends(require_configuration)],
    embedder: Annotated[Embedder, Depends(get_embedder)],
    vector_store: Annotated[PgVectorStore, Depends(get_vector_store)],
    config: Annotated[AgentConfig, Depends(get_agent_config)],
) -> CVSearchResult:
    """
    Perform a semantic search over embedded CV content.

    Parameters
    ----------
    req : CVSearchInput
        Contains:
        - query: Search query string
        - maxResults: Optional number of top results (1-10)

    Returns
    -------
    CVSearchResult
        Ranked documents; `found` is false and `documents` empty on no match.
    """
    # RetrievalError propagates to retrieval_error_handler (502)
    return await tool_search_cv(
        query=req.query,
        embedder=embedder,
        vector_store=vector_store,
        max_results=req.max_results,
        config=config,
    )
