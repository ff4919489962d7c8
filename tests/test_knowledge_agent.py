# =============================================================================
# Unit Tests — Knowledge Agent
# =============================================================================
#
# Embedding service, vector store and LLM are all mocked. Retrieval
# results are shaped like the vector-store boundary returns them: sorted
# by similarity, highest first.
# =============================================================================

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.knowledge import KnowledgeAgent, assemble_context, mean_similarity
from shariah_qa.agents.prompts import INSUFFICIENT_INFORMATION
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.types import QueryCategory, RetrievedChunk
from shariah_qa.services.llm import LLMResponse


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _chunk(i: int, similarity: float) -> RetrievedChunk:
    return RetrievedChunk(
        id=f"chunk-{i}",
        content=f"Riba content {i}",
        document_id="doc-1",
        similarity=similarity,
        category="principles",
    )


class _FakeLLM:
    """complete() is an AsyncMock; stream() yields fixed fragments."""

    def __init__(self, text: str = "Riba is any unjustified increase.", fragments=None):
        self.complete = AsyncMock(
            return_value=LLMResponse(content=text, model="mock", input_tokens=1, output_tokens=1)
        )
        self.fragments = fragments if fragments is not None else ["Riba ", "is ", "interest."]
        self.stream_prompts: list[str] = []
        self.stream_failures: list[Exception] = []

    async def stream(self, messages, system=None, temperature=None, max_tokens=None):
        self.stream_prompts.append(messages[0]["content"])
        if self.stream_failures:
            raise self.stream_failures.pop(0)
        for fragment in self.fragments:
            yield fragment


def _agent(chunks, llm=None) -> tuple[KnowledgeAgent, _FakeLLM, AsyncMock, AsyncMock]:
    llm = llm or _FakeLLM()
    embedder = AsyncMock()
    embedder.embed_one.return_value = [0.1] * 768
    store = AsyncMock()
    store.search.return_value = chunks
    agent = KnowledgeAgent(
        llm,
        embedder=embedder,
        vector_store=store,
        retry=RetryPolicy(max_attempts=3, base_delay=0, max_delay=0, sleep=AsyncMock()),
        retrieval_limit=5,
        retrieval_threshold=0.5,
        reranked_limit=3,
        confidence_threshold=0.5,
        temperature=0.3,
    )
    return agent, llm, embedder, store


class _Sink:
    def __init__(self):
        self.tokens: list[str] = []

    async def __call__(self, token: str) -> None:
        self.tokens.append(token)


# ---------------------------------------------------------------------------
# Test: Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_assemble_context_numbers_sources(self):
        context = assemble_context([_chunk(1, 0.9), _chunk(2, 0.8)])
        assert context == "[Source 1]\nRiba content 1\n\n[Source 2]\nRiba content 2"

    def test_mean_similarity(self):
        assert mean_similarity([_chunk(1, 0.9), _chunk(2, 0.7)]) == pytest.approx(0.8)

    def test_mean_similarity_empty(self):
        assert mean_similarity([]) == 0.0


# ---------------------------------------------------------------------------
# Test: answer()
# ---------------------------------------------------------------------------


class TestAnswer:
    def test_generates_with_top_three_sources(self):
        chunks = [_chunk(i, s) for i, s in enumerate([0.9, 0.85, 0.8, 0.7, 0.6])]
        agent, llm, embedder, store = _agent(chunks)

        result = _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))

        assert len(result.sources) == 3
        assert [s.id for s in result.sources] == ["chunk-0", "chunk-1", "chunk-2"]
        assert result.confidence == pytest.approx(0.85)
        assert result.answer == "Riba is any unjustified increase."
        assert result.category is QueryCategory.PRINCIPLES

        embedder.embed_one.assert_awaited_once_with("What is Riba?")
        store.search.assert_awaited_once_with(
            [0.1] * 768, limit=5, threshold=0.5, category="principles",
        )
        prompt = llm.complete.await_args.args[0][0]["content"]
        assert "[Source 3]\nRiba content 2" in prompt
        assert "Riba content 3" not in prompt

    def test_low_confidence_skips_generation(self):
        agent, llm, _, _ = _agent([_chunk(1, 0.52), _chunk(2, 0.4), _chunk(3, 0.3)])

        result = _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))

        assert result.answer == INSUFFICIENT_INFORMATION
        assert len(result.sources) == 3
        assert result.confidence < 0.5
        llm.complete.assert_not_awaited()

    def test_no_results(self):
        agent, llm, _, _ = _agent([])
        with pytest.raises(AgentError) as exc_info:
            _run(agent.answer("What is Wadiah?", QueryCategory.PRODUCTS))
        assert exc_info.value.code == "NO_RESULTS"
        llm.complete.assert_not_awaited()

    def test_empty_query(self):
        agent, _, embedder, _ = _agent([])
        with pytest.raises(AgentError) as exc_info:
            _run(agent.answer("", QueryCategory.GENERAL))
        assert exc_info.value.code == "EMPTY_QUERY"
        embedder.embed_one.assert_not_awaited()

    def test_embedding_failure_propagates(self):
        agent, llm, embedder, _ = _agent([_chunk(1, 0.9)])
        embedder.embed_one.side_effect = AgentError(
            "Failed to generate embeddings", code="CONNECTION_FAILED", agent="embedding",
        )
        with pytest.raises(AgentError) as exc_info:
            _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))
        assert exc_info.value.agent == "embedding"
        llm.complete.assert_not_awaited()

    def test_store_failure_becomes_agent_error(self):
        agent, llm, _, store = _agent([])
        store.search.side_effect = OSError("disk quota exceeded")

        with pytest.raises(AgentError) as exc_info:
            _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))

        assert exc_info.value.agent == "knowledge"
        assert exc_info.value.code == "UNKNOWN_ERROR"
        assert isinstance(exc_info.value.cause, OSError)
        assert store.search.await_count == 1
        llm.complete.assert_not_awaited()

    def test_store_transient_failure_retried(self):
        agent, _, _, store = _agent([])
        store.search.side_effect = [
            OSError("could not reach database server: connection refused"),
            [_chunk(1, 0.9)],
        ]

        result = _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))

        assert [s.id for s in result.sources] == ["chunk-1"]
        assert store.search.await_count == 2

    def test_generation_retried_on_transient_error(self):
        agent, llm, _, _ = _agent([_chunk(1, 0.9)])
        llm.complete.side_effect = [
            ConnectionError("connection reset by peer"),
            LLMResponse(content="  Answer.  ", model="m", input_tokens=1, output_tokens=1),
        ]
        result = _run(agent.answer("What is Riba?", QueryCategory.PRINCIPLES))
        assert result.answer == "Answer."
        assert llm.complete.await_count == 2


# ---------------------------------------------------------------------------
# Test: answer_streaming()
# ---------------------------------------------------------------------------


class TestAnswerStreaming:
    def test_tokens_pushed_in_order(self):
        agent, llm, _, _ = _agent([_chunk(1, 0.9), _chunk(2, 0.8)])
        sink = _Sink()

        result = _run(agent.answer_streaming("What is Riba?", QueryCategory.PRINCIPLES, sink))

        assert sink.tokens == ["Riba ", "is ", "interest."]
        assert result.answer == "Riba is interest."
        assert len(result.sources) == 2
        llm.complete.assert_not_awaited()

    def test_zero_chunks_answers_ungrounded(self):
        agent, llm, _, _ = _agent([])
        sink = _Sink()

        result = _run(agent.answer_streaming("Hello there", QueryCategory.GENERAL, sink))

        assert result.sources == []
        assert result.confidence == 0.0
        assert sink.tokens == llm.fragments
        assert "Question: Hello there" in llm.stream_prompts[0]

    def test_low_confidence_sends_fixed_answer_once(self):
        agent, llm, _, _ = _agent([_chunk(1, 0.45)])
        sink = _Sink()

        result = _run(agent.answer_streaming("What is Riba?", QueryCategory.PRINCIPLES, sink))

        assert sink.tokens == [INSUFFICIENT_INFORMATION]
        assert result.answer == INSUFFICIENT_INFORMATION
        assert llm.stream_prompts == []

    def test_stream_retried_on_transient_error(self):
        llm = _FakeLLM(fragments=["ok"])
        llm.stream_failures.append(TimeoutError("stream timeout"))
        agent, _, _, _ = _agent([_chunk(1, 0.9)], llm=llm)
        sink = _Sink()

        result = _run(agent.answer_streaming("What is Riba?", QueryCategory.PRINCIPLES, sink))

        assert result.answer == "ok"
        assert len(llm.stream_prompts) == 2


class TestOverrides:
    def test_explicit_zero_limits_kept(self):
        agent = KnowledgeAgent(
            _FakeLLM(), embedder=AsyncMock(), vector_store=AsyncMock(),
            retrieval_limit=0, reranked_limit=0,
        )
        assert agent.retrieval_limit == 0
        assert agent.reranked_limit == 0

    def test_defaults_from_settings(self):
        agent = KnowledgeAgent(_FakeLLM(), embedder=AsyncMock(), vector_store=AsyncMock())
        assert agent.retrieval_limit == 5
        assert agent.reranked_limit == 3
