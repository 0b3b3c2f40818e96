"""
Embedding Client

This module implements the embedding client used on the query path. It calls
an OpenAI-compatible `/embeddings` endpoint (the AI gateway by default) and is
responsible for:

- Network and transport error isolation
- Strict response validation
- Guarding the store's fixed dimensionality

A failure is always raised as EmbeddingError. The caller must never fall back
to an empty or zero vector, which would silently corrupt similarity rankings.

The class is stateless and safe to reuse across concurrent requests.
"""

from __future__ import annotations

from typing import List, Optional
import logging
import httpx

from ..config import settings
from ..core.errors import EmbeddingError

logger = logging.getLogger("cv.embedder")


class Embedder:
    """
    Asynchronous embedding generator for a single query text.

    This class performs no caching.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Override for the gateway key. Defaults to settings.ai_gateway_api_key.

        model : Optional[str]
            Override for embedding model. Defaults to settings.embedding_model.

        base_url : Optional[str]
            Gateway base URL; `/embeddings` is appended.

        dimensions : Optional[int]
            Expected vector length. Defaults to settings.embedding_dimensions.

        timeout : Optional[float]
            HTTP timeout for each request.

        client : Optional[httpx.AsyncClient]
            Shared client. When omitted a client is opened per call.
        """
        if api_key is None and settings.ai_gateway_api_key is not None:
            api_key = settings.ai_gateway_api_key.get_secret_value()
        self.api_key = api_key or ""
        self.model = model or settings.embedding_model
        self.url = (base_url or settings.ai_gateway_base_url).rstrip("/") + "/embeddings"
        self.dimensions = dimensions if dimensions is not None else settings.embedding_dimensions
        self.timeout = timeout if timeout is not None else settings.provider_timeout_s
        self._client = client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding for one input text.

        Parameters
        ----------
        text : str
            Query text. Must be non-empty; the search tool schema rejects
            empty queries before they reach this point.

        Returns
        -------
        List[float]
            The embedding vector.

        Raises
        ------
        EmbeddingError
            If the request fails or the response is malformed.
        """
        if not text:
            raise EmbeddingError("Cannot embed empty text.")

        payload = {
            "model": self.model,
            "input": text,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request failed (%s): model=%s, error=%s",
                type(exc).__name__,
                self.model,
                str(exc),
            )
            raise EmbeddingError(
                f"Embedding generation failed: {type(exc).__name__}"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc

        embeddings = self._extract_embeddings(data)
        if len(embeddings) != 1:
            raise EmbeddingError(
                f"Expected exactly one embedding, got {len(embeddings)}."
            )

        vector = embeddings[0]
        if self.dimensions and len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}."
            )
        return vector

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embeddings(data: dict) -> List[List[float]]:
        """
        Parse and validate embedding output format.

        OpenAI-compatible providers return:
            { "data": [ {"embedding": [...]}, ... ] }

        Raises
        ------
        EmbeddingError
            If the API returns unexpected structure.
        """
        if not isinstance(data, dict) or "data" not in data:
            raise EmbeddingError("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise EmbeddingError("'data' field must be a list.")

        embeddings: List[List[float]] = []

        for index, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingError(
                    f"Malformed embedding record at index {index}: {record!r}"
                )

            emb = record["embedding"]
            if not isinstance(emb, list) or not emb or not all(
                isinstance(x, (float, int)) and not isinstance(x, bool) for x in emb
            ):
                raise EmbeddingError(
                    f"Invalid embedding vector at index {index}: must be float list."
                )

            embeddings.append([float(x) for x in emb])

        return embeddings
