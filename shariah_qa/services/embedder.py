# =============================================================================
# Embedding Service — Query & Batch Vector Generation
# =============================================================================
#
# Generates vector embeddings using any OpenAI-compatible embedding API.
# The default target is Ollama's /v1 endpoint serving nomic-embed-text,
# which produces 768-dimensional vectors.
#
# The OpenAI client here is the synchronous one; calls are offloaded with
# asyncio.to_thread() so they never block the event loop.
#
# Every request goes through the shared RetryPolicy, so connection errors,
# timeouts and rate limits are retried exactly like agent LLM calls.
# Validation failures (EMPTY_TEXT, EMPTY_ARRAY, INVALID_DIMENSIONS) are
# raised once and never retried.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from openai import OpenAI

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.config import settings

logger = logging.getLogger(__name__)


def _build_client() -> OpenAI:
    # Ollama accepts any non-empty key.
    resolved_key = settings.openai_api_key or settings.llm_api_key
    if not resolved_key:
        raise ValueError(
            "No API key configured for embeddings. "
            "Set OPENAI_API_KEY or LLM_API_KEY in .env"
        )

    client_kwargs: dict = {"api_key": resolved_key, "max_retries": 0}
    if settings.embedding_base_url:
        client_kwargs["base_url"] = settings.embedding_base_url

    logger.info(
        "Initialized embedding client (model=%s, base_url=%s)",
        settings.embedding_model,
        settings.embedding_base_url or "https://api.openai.com/v1",
    )
    return OpenAI(**client_kwargs)


class EmbeddingService:
    """
    Text → vector boundary used by the knowledge agent.

    Args:
        client: An OpenAI-compatible sync client. Built from settings when
            omitted; tests pass a MagicMock.
        retry: Shared retry policy.
        model / dimensions / batch_size: Overrides for the settings values.
    """

    def __init__(
        self,
        client: OpenAI | None = None,
        retry: RetryPolicy | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._client = client
        self._retry = retry or RetryPolicy()
        self.model = model or settings.embedding_model
        self.dimensions = (
            settings.embedding_dimensions if dimensions is None else dimensions
        )
        self.batch_size = (
            settings.embedding_batch_size if batch_size is None else batch_size
        )

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = _build_client()
        return self._client

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single query string."""
        if not text or not text.strip():
            raise AgentError("Text cannot be empty", code="EMPTY_TEXT", agent="embedding")

        vectors = await self._retry.run(
            lambda: self._embed_batch([text]),
            agent="embedding",
            action="generate embeddings",
        )
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed many texts in sub-batches of `batch_size`.

        Returns embeddings in the SAME ORDER as the input texts. Each
        sub-batch is retried independently.
        """
        if not texts:
            raise AgentError(
                "Texts array cannot be empty", code="EMPTY_ARRAY", agent="embedding",
            )
        if any(not text or not text.strip() for text in texts):
            raise AgentError(
                "All texts must be non-empty", code="EMPTY_TEXT", agent="embedding",
            )

        embeddings: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            logger.debug(
                "Embedding batch %d-%d of %d texts (model=%s)",
                i + 1, i + len(batch), len(texts), self.model,
            )
            embeddings.extend(
                await self._retry.run(
                    lambda batch=batch: self._embed_batch(batch),
                    agent="embedding",
                    action="generate embeddings",
                )
            )
        return embeddings

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        response = await asyncio.to_thread(
            self.client.embeddings.create, model=self.model, input=batch,
        )

        # Order by the index the API echoes back, not by arrival.
        vectors = [
            item.embedding for item in sorted(response.data, key=lambda x: x.index)
        ]
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise AgentError(
                    f"Invalid embedding dimensions: expected {self.dimensions}, "
                    f"got {len(vector)}",
                    code="INVALID_DIMENSIONS",
                    agent="embedding",
                )
        return vectors
