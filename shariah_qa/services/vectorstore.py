# =============================================================================
# Vector Store Abstraction — Pluggable Search Backend
# =============================================================================
#
# Common interface for cosine-similarity search over the knowledge base,
# with concrete implementations for pgvector (PostgreSQL) and ChromaDB.
#
# Contract of search():
#   - similarity = 1 - cosine distance, rounded to 4 places
#   - only chunks with similarity >= threshold are returned
#   - optional filters: document category and document id
#   - results sorted by similarity, highest first, at most `limit`
#
# ARCHITECTURE:
#   VectorStore (Protocol)
#   ├── PgVectorStore     — document_chunks ⋈ documents, async SQLAlchemy
#   └── ChromaVectorStore — ChromaDB (in-process or client/server)
#       ├── add_chunks()  — seeds the collection (tests, local demos)
#       └── search()      — sync client wrapped in asyncio.to_thread()
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import chromadb
from sqlalchemy import select

from shariah_qa.agents.types import RetrievedChunk
from shariah_qa.config import settings
from shariah_qa.db.engine import get_session_factory
from shariah_qa.db.models import Document, DocumentChunk

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class VectorStore(Protocol):
    async def search(
        self,
        embedding: list[float],
        limit: int,
        threshold: float,
        category: str | None = None,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """
        Find the chunks most similar to `embedding`.

        Args:
            embedding: The query vector (768 dimensions).
            limit: Maximum number of results.
            threshold: Minimum similarity (0.0–1.0) a chunk must reach.
            category: Only search documents of this category.
            document_id: Only search chunks of this document.

        Returns:
            RetrievedChunk list sorted by similarity (highest first).
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: pgvector (PostgreSQL)
# ---------------------------------------------------------------------------


class PgVectorStore:
    """
    pgvector-backed store over the `documents` / `document_chunks` tables.

    The category filter needs the parent document, so chunks are joined to
    documents; chunks whose document row is missing still match when no
    category filter is given.
    """

    def __init__(self, session_factory=None) -> None:
        self._session_factory = session_factory

    async def search(
        self,
        embedding: list[float],
        limit: int,
        threshold: float,
        category: str | None = None,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        distance = DocumentChunk.embedding.cosine_distance(embedding)

        stmt = (
            select(DocumentChunk, Document.category, distance.label("distance"))
            .outerjoin(Document, DocumentChunk.document_id == Document.id)
            .where(DocumentChunk.embedding.is_not(None))
            .where(1 - distance >= threshold)
            .order_by(distance)
            .limit(limit)
        )
        if category is not None:
            stmt = stmt.where(Document.category == category)
        if document_id is not None:
            stmt = stmt.where(DocumentChunk.document_id == document_id)

        factory = self._session_factory or get_session_factory()
        async with factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        logger.debug(
            "pgvector search returned %d rows (limit=%d, threshold=%.2f, category=%s)",
            len(rows), limit, threshold, category,
        )

        return [
            RetrievedChunk(
                id=str(chunk.id),
                content=chunk.content,
                document_id=str(chunk.document_id),
                similarity=round(1.0 - dist, 4),
                category=doc_category or "",
            )
            for chunk, doc_category, dist in rows
        ]


# ---------------------------------------------------------------------------
# Implementation 2: ChromaDB
# ---------------------------------------------------------------------------


class ChromaVectorStore:
    """
    ChromaDB-backed vector store.

    A single collection holds every chunk; `document_id` and `category` are
    stored in chunk metadata and used in the where clause. The collection
    uses cosine distance so scores match the pgvector backend.

    ChromaDB supports both in-process and client/server modes:
    - In-process (default): no extra infra, data held in memory
    - Client/server: set CHROMA_URL for a Docker deployment
    """

    def __init__(
        self,
        client=None,
        collection_name: str | None = None,
    ) -> None:
        if client is not None:
            self._client = client
        elif settings.chroma_url:
            self._client = chromadb.HttpClient(host=settings.chroma_url)
        else:
            self._client = chromadb.Client()

        self._collection = self._client.get_or_create_collection(
            name=collection_name or settings.chroma_collection,
            metadata={"hnsw:space": "cosine"},
        )

    def add_chunks(
        self,
        document_id: str,
        category: str,
        contents: list[str],
        embeddings: list[list[float]],
    ) -> list[str]:
        """Store a document's chunks. Returns the generated chunk ids."""
        ids = [f"{document_id}:{i}" for i in range(len(contents))]
        metadatas = [
            _sanitise_chroma_metadata({
                "document_id": document_id,
                "category": category,
                "chunk_index": i,
            })
            for i in range(len(contents))
        ]

        self._collection.upsert(
            ids=ids,
            documents=contents,
            embeddings=embeddings,
            metadatas=metadatas,
        )

        logger.info(
            "Stored %d chunks for document_id=%s (category=%s) in ChromaDB",
            len(ids), document_id, category,
        )
        return ids

    async def search(
        self,
        embedding: list[float],
        limit: int,
        threshold: float,
        category: str | None = None,
        document_id: str | None = None,
    ) -> list[RetrievedChunk]:
        """Similarity search; the sync ChromaDB client runs in a worker thread."""

        def _sync_search() -> list[RetrievedChunk]:
            results = self._collection.query(
                query_embeddings=[embedding],
                n_results=limit,
                where=_where_clause(category, document_id),
                include=["documents", "metadatas", "distances"],
            )

            chunks: list[RetrievedChunk] = []
            if not (results and results["ids"] and results["ids"][0]):
                return chunks

            for i, chroma_id in enumerate(results["ids"][0]):
                distance = results["distances"][0][i] if results["distances"] else 0.0
                similarity = round(1.0 - distance, 4)
                if similarity < threshold:
                    continue

                metadata = results["metadatas"][0][i] if results["metadatas"] else {}
                content = results["documents"][0][i] if results["documents"] else ""
                chunks.append(RetrievedChunk(
                    id=chroma_id,
                    content=content,
                    document_id=str(metadata.get("document_id", "")),
                    similarity=similarity,
                    category=str(metadata.get("category", "")),
                ))

            chunks.sort(key=lambda c: c.similarity, reverse=True)
            return chunks

        return await asyncio.to_thread(_sync_search)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------


def create_vector_store(
    override_type: str | None = None,
) -> PgVectorStore | ChromaVectorStore:
    """
    Build the configured vector store backend.

    Reads `vectorstore_type` from settings:
    - "pgvector" → PgVectorStore
    - "chroma" → ChromaVectorStore
    """
    store_type = override_type or settings.vectorstore_type

    if store_type == "chroma":
        logger.info("Using ChromaDB vector store")
        return ChromaVectorStore()
    if store_type == "pgvector":
        logger.info("Using pgvector vector store")
        return PgVectorStore()
    raise ValueError(
        f"Unknown vector store '{store_type}'. Supported: 'pgvector', 'chroma'"
    )


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _where_clause(category: str | None, document_id: str | None) -> dict | None:
    """ChromaDB needs $and to combine more than one metadata condition."""
    conditions = []
    if category is not None:
        conditions.append({"category": category})
    if document_id is not None:
        conditions.append({"document_id": document_id})

    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"$and": conditions}


def _sanitise_chroma_metadata(metadata: dict) -> dict:
    """
    Sanitise metadata for ChromaDB compatibility.

    ChromaDB requires all metadata values to be str, int, float, or bool:
    - list → comma-separated string
    - None → empty string
    """
    sanitised = {}
    for key, value in metadata.items():
        if value is None:
            sanitised[key] = ""
        elif isinstance(value, list):
            sanitised[key] = ",".join(str(v) for v in value)
        elif isinstance(value, (str, int, float, bool)):
            sanitised[key] = value
        else:
            sanitised[key] = str(value)
    return sanitised
