"""
Text embedding with cleaning, batching and L2 normalisation.

Wraps a LangChain Embeddings provider. Texts are cleaned (newlines to
spaces, trimmed); empty texts get a zero vector without a provider call.
Batches go out in sequential sub-batches and every returned vector is
normalised to unit length.

Dependencies: langchain_core, langchain_openai
System role: Embedding stage of ingestion and query retrieval
"""

import logging
import math
from typing import Sequence

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from knowledge_rag.configs.embedding import EmbeddingSettings
from knowledge_rag.core.exceptions import EmbeddingError
from knowledge_rag.core.tokens import estimate_tokens as _estimate_tokens

logger = logging.getLogger(__name__)


def clean_text(text: str) -> str:
    """Replace newlines with spaces and trim."""
    return text.replace("\r", " ").replace("\n", " ").strip()


def normalize(vector: Sequence[float]) -> list[float]:
    """Scale a vector to unit L2 norm; a zero vector is returned unchanged."""
    norm = math.sqrt(sum(value * value for value in vector))
    divisor = norm or 1.0
    return [value / divisor for value in vector]


class Embedder:
    """
    Embedding client producing unit vectors of a fixed dimension.

    Any provider failure or a wrong vector count fails the whole batch
    with EmbeddingError; partial results are never returned.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        dimensions: int = 1536,
        batch_size: int = 100,
    ) -> None:
        """
        Initialize embedder.

        Args:
            embeddings: LangChain embeddings provider
            dimensions: Expected vector dimension
            batch_size: Max texts per provider call
        """
        self._embeddings = embeddings
        self._dimensions = dimensions
        self._batch_size = max(batch_size, 1)

    @classmethod
    def from_settings(cls, settings: EmbeddingSettings, api_key: str | None = None) -> "Embedder":
        """
        Build an embedder backed by OpenAI embeddings.

        Args:
            settings: Embedding settings
            api_key: Fallback key when settings.api_key is unset
        """
        embeddings = OpenAIEmbeddings(
            model=settings.model,
            dimensions=settings.dimensions,
            chunk_size=settings.batch_size,
            check_embedding_ctx_length=False,
            request_timeout=settings.timeout_seconds,
            api_key=settings.api_key or api_key,
        )
        logger.info(
            f"{__name__}:from_settings - Initialized with model={settings.model}, "
            f"dimensions={settings.dimensions}"
        )
        return cls(embeddings, dimensions=settings.dimensions, batch_size=settings.batch_size)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @staticmethod
    def estimate_tokens(text: str) -> int:
        return _estimate_tokens(text)

    def _zero_vector(self) -> list[float]:
        return [0.0] * self._dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed a single document text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a search query.

        Uses the provider's query endpoint, which may differ from the
        document endpoint for asymmetric models.
        """
        cleaned = clean_text(text)
        if not cleaned:
            logger.warning(f"{__name__}:embed_query - Empty query text, returning zero vector")
            return self._zero_vector()

        try:
            vector = await self._embeddings.aembed_query(cleaned)
        except Exception as e:
            logger.error(f"{__name__}:embed_query - {type(e).__name__}: {e}")
            raise EmbeddingError(f"Query embedding failed: {e}") from e

        self._check_dimensions([vector])
        return normalize(vector)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed many texts, preserving input order.

        Args:
            texts: Raw texts

        Returns:
            One unit vector per input text (zero vector for empty texts)

        Raises:
            EmbeddingError: On any provider failure or vector count mismatch
        """
        results: list[list[float] | None] = [None] * len(texts)
        pending: list[tuple[int, str]] = []

        for position, text in enumerate(texts):
            cleaned = clean_text(text)
            if cleaned:
                pending.append((position, cleaned))
            else:
                results[position] = self._zero_vector()

        empty = len(texts) - len(pending)
        if empty:
            logger.warning(
                f"{__name__}:embed_batch - {empty} empty text(s) after cleaning, using zero vectors"
            )

        for batch_index, start in enumerate(range(0, len(pending), self._batch_size)):
            batch = pending[start : start + self._batch_size]
            vectors = await self._embed_sub_batch([text for _, text in batch], batch_index)
            for (position, _), vector in zip(batch, vectors):
                results[position] = normalize(vector)

        return [vector if vector is not None else self._zero_vector() for vector in results]

    async def _embed_sub_batch(self, texts: list[str], batch_index: int) -> list[list[float]]:
        try:
            vectors = await self._embeddings.aembed_documents(texts)
        except Exception as e:
            logger.error(f"{__name__}:embed_batch - Sub-batch {batch_index} failed: {type(e).__name__}: {e}")
            raise EmbeddingError(
                f"Embedding request failed: {e}",
                batch_index=batch_index,
                details={"batch_size": len(texts)},
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                "Embedding provider returned a different number of vectors than texts sent",
                batch_index=batch_index,
                details={"expected": len(texts), "received": len(vectors)},
            )
        self._check_dimensions(vectors, batch_index)
        return vectors

    def _check_dimensions(self, vectors: Sequence[Sequence[float]], batch_index: int | None = None) -> None:
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise EmbeddingError(
                    "Embedding dimension mismatch",
                    batch_index=batch_index,
                    details={"expected": self._dimensions, "received": len(vector)},
                )
