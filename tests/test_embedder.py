# =============================================================================
# Unit Tests — Embedding Service
# =============================================================================
#
# The OpenAI-compatible client is a MagicMock; calls go through the real
# asyncio.to_thread path. Retry sleeps are injected so nothing waits.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.services.embedder import EmbeddingService


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _response(vectors: list[list[float]], order: list[int] | None = None):
    indices = order if order is not None else list(range(len(vectors)))
    return SimpleNamespace(
        data=[SimpleNamespace(index=i, embedding=vectors[i]) for i in indices]
    )


def _echo_client(dims: int = 3) -> MagicMock:
    """Client that embeds each text as [len(text)] * dims."""
    client = MagicMock()

    def create(model, input):
        return _response([[float(len(text))] * dims for text in input])

    client.embeddings.create.side_effect = create
    return client


def _service(client, dims: int = 3, batch_size: int = 2, max_attempts: int = 3):
    retry = RetryPolicy(max_attempts=max_attempts, base_delay=0.0, sleep=AsyncMock())
    return EmbeddingService(
        client=client, retry=retry, model="nomic-embed-text",
        dimensions=dims, batch_size=batch_size,
    )


class TestEmbedOne:
    def test_returns_vector(self):
        client = _echo_client()
        vector = _run(_service(client).embed_one("riba"))

        assert vector == [4.0, 4.0, 4.0]
        client.embeddings.create.assert_called_once_with(
            model="nomic-embed-text", input=["riba"],
        )

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_text(self, text):
        client = _echo_client()
        with pytest.raises(AgentError) as exc_info:
            _run(_service(client).embed_one(text))

        assert exc_info.value.code == "EMPTY_TEXT"
        client.embeddings.create.assert_not_called()

    def test_wrong_dimensions_not_retried(self):
        client = MagicMock()
        client.embeddings.create.return_value = _response([[0.1, 0.2]])

        with pytest.raises(AgentError) as exc_info:
            _run(_service(client, dims=3).embed_one("riba"))

        assert exc_info.value.code == "INVALID_DIMENSIONS"
        assert "expected 3, got 2" in exc_info.value.message
        assert client.embeddings.create.call_count == 1

    def test_transient_failure_retried(self):
        client = MagicMock()
        client.embeddings.create.side_effect = [
            Exception("Connection reset by peer"),
            _response([[1.0, 2.0, 3.0]]),
        ]

        vector = _run(_service(client).embed_one("riba"))
        assert vector == [1.0, 2.0, 3.0]
        assert client.embeddings.create.call_count == 2

    def test_exhausted_retries(self):
        client = MagicMock()
        client.embeddings.create.side_effect = Exception("Request timeout")

        with pytest.raises(AgentError) as exc_info:
            _run(_service(client, max_attempts=2).embed_one("riba"))

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.agent == "embedding"
        assert exc_info.value.message.startswith(
            "Failed to generate embeddings after 2 attempt(s)"
        )


class TestEmbedMany:
    def test_batches_preserve_order(self):
        client = _echo_client()
        texts = ["a", "bb", "ccc", "dddd", "eeeee"]

        vectors = _run(_service(client, batch_size=2).embed_many(texts))

        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
        batches = [c.kwargs["input"] for c in client.embeddings.create.call_args_list]
        assert batches == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]

    def test_sorted_by_returned_index(self):
        client = MagicMock()
        client.embeddings.create.return_value = _response(
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], order=[1, 0],
        )

        vectors = _run(_service(client, batch_size=10).embed_many(["x", "y"]))
        assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]

    def test_empty_array(self):
        with pytest.raises(AgentError) as exc_info:
            _run(_service(_echo_client()).embed_many([]))
        assert exc_info.value.code == "EMPTY_ARRAY"

    def test_blank_member(self):
        client = _echo_client()
        with pytest.raises(AgentError) as exc_info:
            _run(_service(client).embed_many(["riba", " "]))

        assert exc_info.value.code == "EMPTY_TEXT"
        client.embeddings.create.assert_not_called()

    def test_each_batch_retried_independently(self):
        client = MagicMock()
        client.embeddings.create.side_effect = [
            _response([[1.0] * 3, [2.0] * 3]),
            Exception("503 Service Unavailable"),
            _response([[3.0] * 3]),
        ]

        vectors = _run(_service(client, batch_size=2).embed_many(["a", "b", "c"]))
        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0]
        assert client.embeddings.create.call_count == 3
