"""
SQLAlchemy Models

Maps the `cv_embeddings` table populated by the offline seeding process:

    CREATE TABLE cv_embeddings (
      id SERIAL PRIMARY KEY,
      content TEXT NOT NULL,
      metadata JSONB NOT NULL DEFAULT '{}',
      embedding vector(1536)
    );

The query path only ever reads from this table.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pgvector.sqlalchemy import Vector

from ..config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class CVEmbedding(Base):
    """
    One embedded CV chunk.

    Uses pgvector for similarity search.
    """
    __tablename__ = "cv_embeddings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )

    # 1536 dimensions for text-embedding-3-small
    embedding = Column(Vector(settings.embedding_dimensions), nullable=True)
