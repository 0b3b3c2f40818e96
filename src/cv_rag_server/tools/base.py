"""
Tool Dispatch Layer

This module defines the central, authoritative dispatch mechanism for all
LLM-invoked tool calls. It enforces:

- Explicit tool allow-listing
- Strong argument validation against the tool's input schema
- Dependency injection for testability

No tool is callable unless it is explicitly registered here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from .definitions import TOOL_SEARCH_CV
from .search_tools import CVSearchInput, tool_search_cv
from ..agent.config import AgentConfig
from ..core.errors import InvalidRequestError
from ..embeddings.models import EmbeddingService, VectorSearchBackend


# ---------------------------------------------------------------------
# Tool Type Definitions
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ToolContext:
    """Services a tool handler may use. Shared read-only per request."""
    embedder: EmbeddingService
    vector_store: VectorSearchBackend
    config: AgentConfig


ToolHandler = Callable[[Dict[str, Any], ToolContext], Awaitable[Dict[str, Any]]]


# ---------------------------------------------------------------------
# Tool Registry (AUTHORITATIVE)
# ---------------------------------------------------------------------

async def _handle_search_cv(args: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
    try:
        parsed = CVSearchInput.model_validate(args)
    except ValidationError as exc:
        raise InvalidRequestError(
            f"Invalid arguments for {TOOL_SEARCH_CV}.",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc

    result = await tool_search_cv(
        query=parsed.query,
        embedder=ctx.embedder,
        vector_store=ctx.vector_store,
        max_results=parsed.max_results,
        config=ctx.config,
    )
    return result.to_tool_output()


TOOL_REGISTRY: Dict[str, ToolHandler] = {
    TOOL_SEARCH_CV: _handle_search_cv,
}


# ---------------------------------------------------------------------
# Public Dispatch API
# ---------------------------------------------------------------------

async def dispatch_tool_call(
    tool_name: str,
    args: Dict[str, Any],
    ctx: ToolContext,
) -> Dict[str, Any]:
    """
    Dispatch a tool call requested by the LLM.

    Parameters
    ----------
    tool_name : str
        The symbolic tool name requested by the LLM.

    args : Dict[str, Any]
        Parsed JSON arguments for the tool.

    ctx : ToolContext
        Injected services.

    Returns
    -------
    Dict[str, Any]
        JSON-ready tool result.

    Raises
    ------
    InvalidRequestError
        If the tool name is unknown or the arguments violate its schema.
    RetrievalError
        If the underlying embedding or search call fails.
    """

    handler = TOOL_REGISTRY.get(tool_name)
    if not handler:
        raise InvalidRequestError(f"Unknown tool requested: {tool_name}")

    if not isinstance(args, dict):
        raise InvalidRequestError(f"Arguments for {tool_name} must be a JSON object.")

    return await handler(args, ctx)
