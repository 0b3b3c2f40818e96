"""
Vector Store

PostgreSQL + pgvector based similarity search over the `cv_embeddings` table.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import CVEmbedding
from ..config import settings
from ..core.errors import VectorStoreError
from ..embeddings.models import SearchResult

logger = logging.getLogger("cv.vector_store")


class PgVectorStore:
    """
    PostgreSQL-backed vector store using pgvector for similarity search.

    Read-only: the query path never writes to the table. Each search opens
    its own short-lived session, so one store can be shared by concurrent
    requests and outlives any single request scope (e.g. a streaming body).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dimensions: Optional[int] = None,
    ) -> None:
        """
        Initialize with an async session factory.

        Parameters
        ----------
        session_factory : async_sessionmaker[AsyncSession]
            Factory producing SQLAlchemy async sessions.
        dimensions : Optional[int]
            Fixed embedding dimensionality of the table.
            Defaults to settings.embedding_dimensions.
        """
        self._session_factory = session_factory
        self._dimensions = dimensions if dimensions is not None else settings.embedding_dimensions

    async def search(
        self,
        embedding: List[float],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Search for similar chunks using cosine similarity.

        Parameters
        ----------
        embedding : List[float]
            Query vector.
        limit : Optional[int]
            Number of nearest rows to fetch. Defaults to settings.default_search_limit.
        threshold : Optional[float]
            Minimum similarity to keep. Defaults to settings.similarity_threshold.

        Returns
        -------
        List[SearchResult]
            Matches sorted by similarity (descending). Rows with malformed
            metadata are logged and skipped.

        Raises
        ------
        VectorStoreError
            On dimensionality mismatch or database failure.
        """
        if limit is None:
            limit = settings.default_search_limit
        if threshold is None:
            threshold = settings.similarity_threshold

        if self._dimensions and len(embedding) != self._dimensions:
            raise VectorStoreError(
                f"Query embedding has {len(embedding)} dimensions, store expects {self._dimensions}."
            )

        # pgvector's <=> operator; similarity = 1 - distance
        cosine_distance = CVEmbedding.embedding.cosine_distance(embedding)

        stmt = (
            select(
                CVEmbedding.id,
                CVEmbedding.content,
                CVEmbedding.metadata_.label("metadata"),
                (1 - cosine_distance).label("similarity"),
            )
            .where(CVEmbedding.embedding.is_not(None))
            .order_by(cosine_distance, CVEmbedding.id)
            .limit(limit)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Vector search failed: %s", type(exc).__name__)
            raise VectorStoreError(f"Vector search failed: {type(exc).__name__}") from exc

        results: List[SearchResult] = []
        for row in rows:
            parsed = self._parse_row(row)
            if parsed is not None and parsed.similarity >= threshold:
                results.append(parsed)
        return results

    @staticmethod
    def _parse_row(row: Any) -> Optional[SearchResult]:
        """
        Validate a database row, returning None (and logging) if it is malformed.
        """
        metadata = row.metadata
        row_id = getattr(row, "id", None)

        if metadata is None:
            metadata = {}
        elif isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except ValueError:
                logger.warning("Skipping row %s: metadata is not valid JSON", row_id)
                return None

        try:
            return SearchResult.model_validate({
                "content": row.content,
                "metadata": metadata,
                "similarity": row.similarity,
            })
        except ValidationError as exc:
            logger.warning(
                "Skipping row %s: failed to parse search result: %s",
                row_id,
                exc.errors(include_url=False),
            )
            return None
