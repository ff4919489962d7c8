# =============================================================================
# Unit Tests — Vector Store (ChromaDB backend)
# =============================================================================
#
# Tests ChromaDB vector store operations: add, threshold search, metadata
# filtering. Uses ChromaDB's in-process mode (no external services needed).
# pgvector is not covered here; it needs a running PostgreSQL instance.
# =============================================================================

import asyncio
import uuid

import chromadb
import pytest

from shariah_qa.agents.types import RetrievedChunk
from shariah_qa.services.vectorstore import (
    ChromaVectorStore,
    PgVectorStore,
    _sanitise_chroma_metadata,
    _where_clause,
    create_vector_store,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _make_store() -> ChromaVectorStore:
    """Fresh in-process store with a unique collection per test."""
    return ChromaVectorStore(
        client=chromadb.Client(),
        collection_name=f"test_{uuid.uuid4().hex}",
    )


def _seed(store: ChromaVectorStore) -> None:
    store.add_chunks(
        document_id="riba-guide",
        category="principles",
        contents=["Riba is any guaranteed increase on a loan.", "Unrelated text."],
        embeddings=[[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
    )
    store.add_chunks(
        document_id="murabaha-guide",
        category="products",
        contents=["Murabaha is a cost-plus sale."],
        embeddings=[[0.8, 0.6, 0.0]],
    )


class TestChromaVectorStore:
    def test_add_chunks_returns_ids(self):
        store = _make_store()
        ids = store.add_chunks(
            document_id="doc-1",
            category="principles",
            contents=["first", "second"],
            embeddings=[[0.1, 0.2, 0.3], [0.3, 0.2, 0.1]],
        )
        assert ids == ["doc-1:0", "doc-1:1"]

    def test_search_applies_threshold_and_order(self):
        store = _make_store()
        _seed(store)

        results = _run(store.search([1.0, 0.0, 0.0], limit=5, threshold=0.5))

        assert all(isinstance(r, RetrievedChunk) for r in results)
        assert [r.document_id for r in results] == ["riba-guide", "murabaha-guide"]
        assert results[0].similarity == pytest.approx(1.0, abs=1e-3)
        assert results[1].similarity == pytest.approx(0.8, abs=1e-3)
        assert results[0].content.startswith("Riba is")
        assert results[0].category == "principles"

    def test_search_respects_limit(self):
        store = _make_store()
        _seed(store)

        results = _run(store.search([1.0, 0.0, 0.0], limit=1, threshold=0.0))
        assert len(results) == 1
        assert results[0].id == "riba-guide:0"

    def test_category_filter(self):
        store = _make_store()
        _seed(store)

        results = _run(
            store.search([1.0, 0.0, 0.0], limit=5, threshold=0.5, category="products")
        )
        assert [r.id for r in results] == ["murabaha-guide:0"]

    def test_document_filter(self):
        store = _make_store()
        _seed(store)

        results = _run(store.search(
            [0.0, 1.0, 0.0], limit=5, threshold=0.5, document_id="riba-guide",
        ))
        assert [r.content for r in results] == ["Unrelated text."]

    def test_nothing_above_threshold(self):
        store = _make_store()
        _seed(store)

        results = _run(store.search([0.0, 0.0, 1.0], limit=5, threshold=0.5))
        assert results == []

    def test_empty_collection(self):
        store = _make_store()
        assert _run(store.search([1.0, 0.0, 0.0], limit=5, threshold=0.5)) == []


class TestWhereClause:
    def test_no_filters(self):
        assert _where_clause(None, None) is None

    def test_single_filter(self):
        assert _where_clause("principles", None) == {"category": "principles"}
        assert _where_clause(None, "doc-1") == {"document_id": "doc-1"}

    def test_combined_filters(self):
        assert _where_clause("principles", "doc-1") == {
            "$and": [{"category": "principles"}, {"document_id": "doc-1"}]
        }


class TestSanitiseMetadata:
    def test_converts_unsupported_values(self):
        assert _sanitise_chroma_metadata({
            "tags": ["riba", "gharar"],
            "missing": None,
            "index": 2,
            "score": 0.5,
            "ok": True,
            "other": {"a": 1},
        }) == {
            "tags": "riba,gharar",
            "missing": "",
            "index": 2,
            "score": 0.5,
            "ok": True,
            "other": "{'a': 1}",
        }


class TestFactory:
    def test_pgvector(self):
        assert isinstance(create_vector_store("pgvector"), PgVectorStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown vector store"):
            create_vector_store("faiss")
