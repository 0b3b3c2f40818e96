"""
Vector Store Tests

Covers both search backends:
- InMemoryVectorStore (numpy cosine search)
- PgVectorStore row handling against a fake session factory
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from cv_rag_server.core.errors import RetrievalError, VectorStoreError
from cv_rag_server.db.vector_store import PgVectorStore
from cv_rag_server.embeddings.index import InMemoryVectorStore

from conftest import chunk


# ---------------------------------------------------------------------
# InMemoryVectorStore
# ---------------------------------------------------------------------

class TestInMemoryVectorStore:

    @pytest.mark.asyncio
    async def test_threshold_applied_after_limit(self):
        # Similarities 0.9, 0.5, 0.2 against the query [1, 0]
        store = InMemoryVectorStore([
            chunk("A", "N1", [0.9, 0.43588989435]),
            chunk("B", "N2", [0.5, 0.86602540378]),
            chunk("C", "N3", [0.2, 0.97979589711]),
        ])

        results = await store.search([1.0, 0.0], limit=5, threshold=0.3)

        assert [r.content for r in results] == ["A", "B"]
        assert results[0].similarity == pytest.approx(0.9)
        assert results[1].similarity == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_limit_bounds_results(self, cv_store):
        results = await cv_store.search([1.0, 0.0, 0.0], limit=1, threshold=-1.0)
        assert len(results) == 1
        assert results[0].metadata.node_id == "NODE_01"

    @pytest.mark.asyncio
    async def test_sorted_descending_and_metadata_kept(self, cv_store):
        results = await cv_store.search([1.0, 0.0, 0.0], limit=10, threshold=-1.0)
        sims = [r.similarity for r in results]
        assert sims == sorted(sims, reverse=True)
        assert results[1].metadata.category == "projects"

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self):
        store = InMemoryVectorStore([
            chunk("first", "N1", [1.0, 0.0]),
            chunk("second", "N2", [2.0, 0.0]),
            chunk("third", "N3", [3.0, 0.0]),
        ])
        results = await store.search([1.0, 0.0], limit=3, threshold=0.0)
        assert [r.content for r in results] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_nothing_above_threshold(self, cv_store):
        assert await cv_store.search([0.0, 1.0, 0.0], limit=5, threshold=0.99) == []

    @pytest.mark.asyncio
    async def test_empty_store_and_zero_limit(self, cv_store):
        assert await InMemoryVectorStore().search([1.0, 0.0]) == []
        assert await cv_store.search([1.0, 0.0, 0.0], limit=0) == []

    @pytest.mark.asyncio
    async def test_zero_query_vector_matches_nothing(self, cv_store):
        assert await cv_store.search([0.0, 0.0, 0.0], limit=5, threshold=-1.0) == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, cv_store):
        with pytest.raises(VectorStoreError):
            await cv_store.search([1.0, 0.0], limit=5)

    def test_vector_store_error_is_retrieval_error(self):
        assert issubclass(VectorStoreError, RetrievalError)

    def test_inconsistent_chunk_dimensions_rejected(self):
        with pytest.raises(VectorStoreError):
            InMemoryVectorStore([
                chunk("a", "N1", [1.0, 0.0]),
                chunk("b", "N2", [1.0, 0.0, 0.0]),
            ])

    def test_from_records_skips_malformed(self):
        store = InMemoryVectorStore.from_records([
            {"id": 1, "content": "ok", "metadata": {"node_id": "N1"}, "embedding": [1.0, 0.0]},
            {"content": "", "embedding": [1.0, 0.0]},
            {"content": "no vector"},
            "garbage",
        ])
        assert len(store) == 1
        assert store.dimensions == 2


# ---------------------------------------------------------------------
# PgVectorStore
# ---------------------------------------------------------------------

class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class FakeSession:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.statements = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, stmt):
        self.statements.append(stmt)
        if self.error is not None:
            raise self.error
        return FakeResult(self.rows)


def row(id, content, metadata, similarity):
    return SimpleNamespace(id=id, content=content, metadata=metadata, similarity=similarity)


class TestPgVectorStore:

    @pytest.mark.asyncio
    async def test_rows_mapped_and_threshold_applied(self):
        session = FakeSession([
            row(1, "Python", {"node_id": "N1", "category": "skills"}, 0.91),
            row(2, "Rust", '{"node_id": "N2"}', 0.45),
            row(3, "Cooking", {"node_id": "N3"}, 0.10),
        ])
        store = PgVectorStore(lambda: session, dimensions=3)

        results = await store.search([0.1, 0.2, 0.3], limit=5, threshold=0.3)

        assert [r.content for r in results] == ["Python", "Rust"]
        assert results[0].metadata.category == "skills"
        # JSON text metadata is decoded
        assert results[1].metadata.node_id == "N2"
        assert len(session.statements) == 1

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self):
        session = FakeSession([
            row(1, "bad json", "{not json", 0.9),
            row(2, "bad metadata", ["a", "list"], 0.9),
            row(3, "bad similarity", {}, "high"),
            row(4, "good", None, 0.8),
        ])
        store = PgVectorStore(lambda: session, dimensions=3)

        results = await store.search([0.1, 0.2, 0.3], limit=5, threshold=0.3)

        assert [r.content for r in results] == ["good"]
        assert results[0].metadata.node_id is None

    @pytest.mark.asyncio
    async def test_database_failure_raises(self):
        session = FakeSession(error=OperationalError("SELECT", {}, Exception("down")))
        store = PgVectorStore(lambda: session, dimensions=3)

        with pytest.raises(VectorStoreError):
            await store.search([0.1, 0.2, 0.3])

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected_before_query(self):
        session = FakeSession()
        store = PgVectorStore(lambda: session, dimensions=3)

        with pytest.raises(VectorStoreError):
            await store.search([0.1, 0.2])
        assert session.statements == []
