# =============================================================================
# Database Models — SQLAlchemy ORM (read side of the knowledge base)
# =============================================================================
#
# The knowledge base is populated by a separate ingestion process; this
# service only reads it. The schema mirrors what that process writes:
#
# ┌──────────────────┐       ┌──────────────────────────────────────┐
# │  documents       │       │  document_chunks                     │
# ├──────────────────┤       ├──────────────────────────────────────┤
# │ id (uuid PK)     │──1:N─▶│ id (uuid PK)                         │
# │ title            │       │ document_id (FK → documents.id)      │
# │ description      │       │ content (text)                       │
# │ category         │       │ chunk_index (int)                    │
# │ file_path        │       │ embedding (vector(768))              │
# │ file_type        │       │ created_at                           │
# │ status           │       └──────────────────────────────────────┘
# │ created_at       │
# │ updated_at       │
# └──────────────────┘
#
# `documents.category` holds one of the routing categories; vector search
# filters on it through a join.
# =============================================================================

import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from shariah_qa.config import settings


class Base(DeclarativeBase):
    pass


class Document(Base):
    """A source document in the Islamic finance knowledge base."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # principles | products | compliance | comparison | calculation | general
    category: Mapped[str] = mapped_column(Text, nullable=False)

    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="processing")

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False,
    )

    chunks: Mapped[list["DocumentChunk"]] = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, title='{self.title}', category={self.category})>"


class DocumentChunk(Base):
    """A text chunk of a document plus its embedding."""

    __tablename__ = "document_chunks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Width must equal the embedding model's output (nomic-embed-text: 768).
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimensions),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False,
    )

    document: Mapped["Document"] = relationship("Document", back_populates="chunks")

    def __repr__(self) -> str:
        return (
            f"<DocumentChunk(id={self.id}, doc_id={self.document_id}, "
            f"index={self.chunk_index})>"
        )


# HNSW index with cosine ops; similarity is reported as 1 - cosine distance.
chunk_embedding_idx = Index(
    "chunks_embedding_idx",
    DocumentChunk.embedding,
    postgresql_using="hnsw",
    postgresql_with={"m": 16, "ef_construction": 64},
    postgresql_ops={"embedding": "vector_cosine_ops"},
)
