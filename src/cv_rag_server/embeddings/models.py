"""
Embedding Data Models

This module defines the canonical data model for CV content chunks stored
in the vector store and for the per-query search results derived from them.

Each stored chunk corresponds to ONE embedding vector and ONE chunk of text.
Chunks are written by the offline seeding process and are read-only here.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from pydantic import BaseModel, Field, ConfigDict


class ChunkMetadata(BaseModel):
    """
    Structured metadata attached to a chunk.

    Ingestion always writes `node_id` and `category`, but rows written by
    older seeders may lack them; the search tool substitutes defaults.
    """

    node_id: Optional[str] = None
    category: Optional[str] = None
    header: Optional[str] = None

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )


class ContentChunk(BaseModel):
    """
    A single stored CV chunk with its embedding.
    """

    content: str = Field(
        ...,
        min_length=1,
        description="Raw text content for this embedded chunk.",
    )

    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)

    embedding: List[float] = Field(
        ...,
        min_length=1,
        description="Fixed-dimension embedding vector.",
    )

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )


class SearchResult(BaseModel):
    """
    One nearest-neighbour match, derived per query and never persisted.
    """

    content: str
    metadata: ChunkMetadata
    similarity: float

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


# ---------------------------------------------------------------------
# Service Interfaces
# ---------------------------------------------------------------------

class EmbeddingService(Protocol):
    async def embed(self, text: str) -> List[float]: ...


class VectorSearchBackend(Protocol):
    """
    Read-only nearest-neighbour search over stored chunks.

    Implementations return results in descending similarity order, keep at
    most `limit` of them and drop any below `threshold`.
    """

    async def search(
        self,
        embedding: List[float],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]: ...
