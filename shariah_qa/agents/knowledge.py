# =============================================================================
# Knowledge Agent — Retrieval-Augmented Answering
# =============================================================================
#
# PIPELINE:
#   1. embed the query (EmbeddingService)
#   2. retrieve top `retrieval_limit` chunks of the query's category with
#      similarity >= `retrieval_threshold`
#   3. rerank: keep the first `reranked_limit` (the store returns them
#      sorted by similarity already)
#   4. confidence = mean similarity of the kept chunks
#   5. confidence < threshold → fixed "insufficient information" answer,
#      NO generation call
#   6. otherwise build "[Source i]" context and generate
#
# Two entry points share the pipeline:
#   answer()           — one completion; zero chunks is NO_RESULTS
#   answer_streaming() — tokens pushed through an awaitable sink as they
#                        arrive; zero chunks falls back to an ungrounded
#                        general answer instead of failing
#
# The vector search and the generation call are wrapped in the RetryPolicy,
# so a store failure surfaces as an AgentError like any other. The
# embedding boundary retries its own requests.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.prompts import (
    INSUFFICIENT_INFORMATION,
    KnowledgeInput,
    KnowledgePromptBuilder,
    build_general_prompt,
)
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.types import KnowledgeResult, QueryCategory, RetrievedChunk
from shariah_qa.config import settings
from shariah_qa.services.embedder import EmbeddingService
from shariah_qa.services.llm import LLMProvider, user_message
from shariah_qa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

TokenSink = Callable[[str], Awaitable[None]]


def assemble_context(chunks: list[RetrievedChunk]) -> str:
    return "\n\n".join(
        f"[Source {i}]\n{chunk.content}" for i, chunk in enumerate(chunks, start=1)
    )


def mean_similarity(chunks: list[RetrievedChunk]) -> float:
    if not chunks:
        return 0.0
    return sum(c.similarity for c in chunks) / len(chunks)


class KnowledgeAgent:
    def __init__(
        self,
        llm: LLMProvider,
        embedder: EmbeddingService,
        vector_store: VectorStore,
        retry: RetryPolicy | None = None,
        retrieval_limit: int | None = None,
        retrieval_threshold: float | None = None,
        reranked_limit: int | None = None,
        confidence_threshold: float | None = None,
        temperature: float | None = None,
    ) -> None:
        self._llm = llm
        self._embedder = embedder
        self._store = vector_store
        self._retry = retry or RetryPolicy()
        self._prompts = KnowledgePromptBuilder()

        self.retrieval_limit = (
            settings.retrieval_limit if retrieval_limit is None else retrieval_limit
        )
        self.retrieval_threshold = (
            settings.retrieval_threshold
            if retrieval_threshold is None
            else retrieval_threshold
        )
        self.reranked_limit = (
            settings.reranked_limit if reranked_limit is None else reranked_limit
        )
        self.confidence_threshold = (
            settings.knowledge_confidence_threshold
            if confidence_threshold is None
            else confidence_threshold
        )
        self._temperature = (
            settings.knowledge_temperature if temperature is None else temperature
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def answer(self, query: str, category: QueryCategory) -> KnowledgeResult:
        """
        Answer `query` from the knowledge base in one completion.

        Raises:
            AgentError: EMPTY_QUERY, NO_RESULTS, embedding failures, or a
                transport code once generation retries are exhausted.
        """
        self._check_query(query)
        retrieved = await self._retrieve(query, category)
        if not retrieved:
            raise AgentError(
                f"No relevant documents found for category '{category.value}'",
                code="NO_RESULTS",
                agent="knowledge",
            )

        sources = self._rerank(retrieved)
        confidence = mean_similarity(sources)
        if confidence < self.confidence_threshold:
            self._log_short_circuit(category, confidence)
            return KnowledgeResult(INSUFFICIENT_INFORMATION, sources, confidence, category)

        prompt = self._prompts.build_prompt(
            KnowledgeInput(query=query, context=assemble_context(sources))
        )

        async def _generate() -> str:
            response = await self._llm.complete(
                user_message(prompt), temperature=self._temperature,
            )
            return response.content

        text = await self._retry.run(_generate, agent="knowledge", action="generate answer")
        return KnowledgeResult(text.strip(), sources, confidence, category)

    async def answer_streaming(
        self,
        query: str,
        category: QueryCategory,
        sink: TokenSink,
    ) -> KnowledgeResult:
        """
        Same pipeline as answer(), pushing each generated fragment to `sink`.

        The returned result carries the full answer text.
        """
        self._check_query(query)
        retrieved = await self._retrieve(query, category)

        if not retrieved:
            logger.info("No chunks for category %s; answering ungrounded", category.value)
            text = await self._stream(build_general_prompt(query), sink)
            return KnowledgeResult(text, [], 0.0, category)

        sources = self._rerank(retrieved)
        confidence = mean_similarity(sources)
        if confidence < self.confidence_threshold:
            self._log_short_circuit(category, confidence)
            await sink(INSUFFICIENT_INFORMATION)
            return KnowledgeResult(INSUFFICIENT_INFORMATION, sources, confidence, category)

        prompt = self._prompts.build_prompt(
            KnowledgeInput(query=query, context=assemble_context(sources))
        )
        text = await self._stream(prompt, sink)
        return KnowledgeResult(text, sources, confidence, category)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_query(query: str) -> None:
        if not query or not query.strip():
            raise AgentError("Query cannot be empty", code="EMPTY_QUERY", agent="knowledge")

    async def _retrieve(self, query: str, category: QueryCategory) -> list[RetrievedChunk]:
        embedding = await self._embedder.embed_one(query)
        chunks = await self._retry.run(
            lambda: self._store.search(
                embedding,
                limit=self.retrieval_limit,
                threshold=self.retrieval_threshold,
                category=category.value,
            ),
            agent="knowledge",
            action="search knowledge base",
        )
        logger.info(
            "Retrieved %d chunks (category=%s, threshold=%.2f)",
            len(chunks), category.value, self.retrieval_threshold,
        )
        return chunks

    def _rerank(self, chunks: list[RetrievedChunk]) -> list[RetrievedChunk]:
        return chunks[: self.reranked_limit]

    def _log_short_circuit(self, category: QueryCategory, confidence: float) -> None:
        logger.info(
            "Low retrieval confidence %.2f < %.2f for category %s; "
            "returning insufficient-information answer",
            confidence, self.confidence_threshold, category.value,
        )

    async def _stream(self, prompt: str, sink: TokenSink) -> str:
        async def _generate() -> str:
            fragments: list[str] = []
            async for fragment in self._llm.stream(
                user_message(prompt), temperature=self._temperature,
            ):
                fragments.append(fragment)
                await sink(fragment)
            return "".join(fragments)

        text = await self._retry.run(_generate, agent="knowledge", action="generate answer")
        return text.strip()
