"""
Database Package

Provides SQLAlchemy async session management and the read-only pgvector
store over the `cv_embeddings` table.
"""

from .session import get_engine, get_session_factory, dispose_engine
from .models import Base, CVEmbedding
from .vector_store import PgVectorStore

__all__ = [
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "Base",
    "CVEmbedding",
    "PgVectorStore",
]
