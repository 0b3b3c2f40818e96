"""
In-Memory Vector Index

A numpy-backed implementation of the vector search contract used by the
CV search tool. It mirrors the pgvector store exactly:

- similarity = 1 - cosine_distance(query, stored)
- ordered by similarity descending, stable on insertion order for ties
- the first `limit` rows are taken, then rows below `threshold` are dropped

Useful for local development without a database and for tests.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import numpy as np
from pydantic import ValidationError

from .models import ContentChunk, SearchResult
from ..config import settings
from ..core.errors import VectorStoreError

logger = logging.getLogger("cv.vector_store")


class InMemoryVectorStore:
    """
    Read-only after loading. Chunks share one fixed dimensionality.
    """

    def __init__(self, chunks: Iterable[ContentChunk] = ()) -> None:
        self._chunks: List[ContentChunk] = []
        self._matrix: Optional[np.ndarray] = None
        self._dim: Optional[int] = None

        for chunk in chunks:
            self._add(chunk)

    @classmethod
    def from_records(cls, records: Iterable[Any]) -> "InMemoryVectorStore":
        """
        Build a store from raw records (e.g. parsed JSON), skipping any
        record that does not validate as a ContentChunk.
        """
        chunks: List[ContentChunk] = []
        for position, record in enumerate(records):
            try:
                chunks.append(ContentChunk.model_validate(record))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed chunk record at position %d: %s",
                    position,
                    exc.errors(include_url=False),
                )
        return cls(chunks)

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _add(self, chunk: ContentChunk) -> None:
        dim = len(chunk.embedding)
        if self._dim is None:
            self._dim = dim
        elif dim != self._dim:
            raise VectorStoreError(
                f"Inconsistent embedding dimensionality: expected {self._dim}, got {dim}."
            )

        self._chunks.append(chunk)
        self._matrix = None

    def _normalized_matrix(self) -> np.ndarray:
        if self._matrix is None:
            vectors = np.asarray([c.embedding for c in self._chunks], dtype="float64")
            norms = np.linalg.norm(vectors, axis=1, keepdims=True)
            with np.errstate(invalid="ignore", divide="ignore"):
                self._matrix = vectors / norms
        return self._matrix

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def dimensions(self) -> Optional[int]:
        return self._dim

    def __len__(self) -> int:
        return len(self._chunks)

    async def search(
        self,
        embedding: List[float],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Cosine-similarity search.

        Parameters
        ----------
        embedding : List[float]
            Query vector; must match the store's dimensionality.
        limit : Optional[int]
            Maximum number of results. Defaults to settings.default_search_limit.
        threshold : Optional[float]
            Minimum similarity. Defaults to settings.similarity_threshold.

        Returns
        -------
        List[SearchResult]
            Matches sorted by similarity (descending).
        """
        if limit is None:
            limit = settings.default_search_limit
        if threshold is None:
            threshold = settings.similarity_threshold

        if not self._chunks or limit <= 0:
            return []

        if len(embedding) != self._dim:
            raise VectorStoreError(
                f"Query embedding has {len(embedding)} dimensions, store expects {self._dim}."
            )

        query = np.asarray(embedding, dtype="float64")
        with np.errstate(invalid="ignore", divide="ignore"):
            query = query / np.linalg.norm(query)
            similarities = self._normalized_matrix() @ query

        # NaN (zero vectors) sorts last and never passes the threshold
        order = np.argsort(-similarities, kind="stable")[:limit]

        results: List[SearchResult] = []
        for idx in order:
            score = float(similarities[idx])
            if not score >= threshold:
                continue
            chunk = self._chunks[int(idx)]
            results.append(
                SearchResult(
                    content=chunk.content,
                    metadata=chunk.metadata,
                    similarity=score,
                )
            )
        return results
