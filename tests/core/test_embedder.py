"""
Test suite for Embedder.

Tests text cleaning, zero vectors for empty input, sub-batching, order
preservation, normalisation and provider failure handling.

System role: Verification of the embedding stage
"""

import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from knowledge_rag.core.embedder import Embedder, clean_text, normalize
from knowledge_rag.core.exceptions import EmbeddingError


def _norm(vector: list[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


class TestHelpers:
    """Test suite for cleaning and normalisation helpers."""

    def test_clean_text_should_replace_newlines_and_trim(self) -> None:
        assert clean_text("  line one\nline two\r\n ") == "line one line two"

    def test_normalize_should_return_unit_vector(self) -> None:
        assert normalize([3.0, 4.0]) == pytest.approx([0.6, 0.8])

    def test_normalize_should_leave_zero_vector_unchanged(self) -> None:
        assert normalize([0.0, 0.0, 0.0]) == [0.0, 0.0, 0.0]


class TestEmbedderEmbedBatch:
    """Test suite for Embedder.embed_batch()."""

    @pytest.mark.asyncio
    async def test_embed_batch_should_return_unit_vectors_in_input_order(
        self, embedder: Embedder, fake_embeddings
    ) -> None:
        # Arrange
        texts = ["content strategy basics", "email campaign tips", "blog writing guide"]

        # Act
        vectors = await embedder.embed_batch(texts)

        # Assert
        assert len(vectors) == len(texts)
        for text, vector in zip(texts, vectors):
            assert len(vector) == embedder.dimensions
            assert _norm(vector) == pytest.approx(1.0)
            assert vector == pytest.approx(normalize(fake_embeddings.embed_query(text)))

    @pytest.mark.asyncio
    async def test_embed_batch_should_use_zero_vector_for_empty_text(
        self, embedder: Embedder, fake_embeddings
    ) -> None:
        vectors = await embedder.embed_batch(["hello world", "   \n ", "content plan"])

        assert fake_embeddings.document_calls == [["hello world", "content plan"]]
        assert vectors[1] == [0.0] * embedder.dimensions
        assert _norm(vectors[0]) == pytest.approx(1.0)
        assert _norm(vectors[2]) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_embed_batch_should_not_call_provider_when_all_texts_empty(
        self, embedder: Embedder, fake_embeddings
    ) -> None:
        vectors = await embedder.embed_batch(["", "\n"])

        assert fake_embeddings.document_calls == []
        assert vectors == [[0.0] * embedder.dimensions] * 2

    @pytest.mark.asyncio
    async def test_embed_batch_should_send_sequential_sub_batches(self, fake_embeddings) -> None:
        # Arrange
        embedder = Embedder(fake_embeddings, dimensions=16, batch_size=2)
        texts = [f"text number {i}" for i in range(5)]

        # Act
        vectors = await embedder.embed_batch(texts)

        # Assert
        assert [len(call) for call in fake_embeddings.document_calls] == [2, 2, 1]
        assert [text for call in fake_embeddings.document_calls for text in call] == texts
        assert len(vectors) == 5

    @pytest.mark.asyncio
    async def test_embed_batch_should_send_cleaned_text(self, embedder: Embedder, fake_embeddings) -> None:
        await embedder.embed_batch(["line one\nline two  "])

        assert fake_embeddings.document_calls == [["line one line two"]]

    @pytest.mark.asyncio
    async def test_embed_batch_should_raise_embedding_error_on_provider_failure(self) -> None:
        # Arrange
        provider = MagicMock()
        provider.aembed_documents = AsyncMock(side_effect=RuntimeError("HTTP 500"))
        embedder = Embedder(provider, dimensions=4)

        # Act & Assert
        with pytest.raises(EmbeddingError) as exc_info:
            await embedder.embed_batch(["one", "two"])
        assert exc_info.value.details["batch_index"] == 0

    @pytest.mark.asyncio
    async def test_embed_batch_should_raise_on_vector_count_mismatch(self) -> None:
        provider = MagicMock()
        provider.aembed_documents = AsyncMock(return_value=[[1.0, 0.0, 0.0, 0.0]])
        embedder = Embedder(provider, dimensions=4)

        with pytest.raises(EmbeddingError) as exc_info:
            await embedder.embed_batch(["one", "two"])
        assert exc_info.value.details["expected"] == 2
        assert exc_info.value.details["received"] == 1

    @pytest.mark.asyncio
    async def test_embed_batch_should_raise_on_dimension_mismatch(self) -> None:
        provider = MagicMock()
        provider.aembed_documents = AsyncMock(return_value=[[1.0, 0.0]])
        embedder = Embedder(provider, dimensions=4)

        with pytest.raises(EmbeddingError):
            await embedder.embed_batch(["one"])


class TestEmbedderEmbedQuery:
    """Test suite for Embedder.embed() and embed_query()."""

    @pytest.mark.asyncio
    async def test_embed_query_should_use_query_endpoint(self, embedder: Embedder, fake_embeddings) -> None:
        vector = await embedder.embed_query("What is a hook?\nExplain.")

        assert fake_embeddings.query_calls == ["What is a hook? Explain."]
        assert fake_embeddings.document_calls == []
        assert _norm(vector) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_embed_query_should_return_zero_vector_for_empty_query(
        self, embedder: Embedder, fake_embeddings
    ) -> None:
        vector = await embedder.embed_query("  ")

        assert vector == [0.0] * embedder.dimensions
        assert fake_embeddings.query_calls == []

    @pytest.mark.asyncio
    async def test_embed_query_should_wrap_provider_errors(self) -> None:
        provider = MagicMock()
        provider.aembed_query = AsyncMock(side_effect=TimeoutError("timed out"))
        embedder = Embedder(provider, dimensions=4)

        with pytest.raises(EmbeddingError):
            await embedder.embed_query("query")

    @pytest.mark.asyncio
    async def test_embed_should_embed_single_document(self, embedder: Embedder, fake_embeddings) -> None:
        vector = await embedder.embed("single document")

        assert fake_embeddings.document_calls == [["single document"]]
        assert len(vector) == embedder.dimensions

    def test_estimate_tokens_should_use_byte_heuristic(self, embedder: Embedder) -> None:
        assert embedder.estimate_tokens("abcdefgh") == 2
