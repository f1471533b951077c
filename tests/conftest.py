"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory SQLite session factory, in-memory Qdrant vector index,
deterministic fake embeddings and sample retrieval hits
Dependencies: pytest, pytest-asyncio, sqlalchemy, aiosqlite, qdrant_client, langchain_core
System role: Test infrastructure and fixture management
"""

import hashlib
import re

import pytest
from langchain_core.embeddings import Embeddings
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from knowledge_rag.boundary.db.base import Base
from knowledge_rag.boundary.db.models import ChunkRecordModel  # noqa: F401
from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex
from knowledge_rag.core.embedder import Embedder
from knowledge_rag.models.retrieval import RetrievalHit

TEST_DIMENSIONS = 16

_WORD = re.compile(r"[a-z0-9]+")


class FakeEmbeddings(Embeddings):
    """
    Deterministic bag-of-words embeddings.

    Each word is hashed into one of TEST_DIMENSIONS buckets, so texts sharing
    words get similar vectors. Every call is recorded for assertions.
    """

    def __init__(self, dimensions: int = TEST_DIMENSIONS) -> None:
        self.dimensions = dimensions
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for word in _WORD.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.dimensions
            vector[bucket] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    """Provide recording fake embeddings."""
    return FakeEmbeddings()


@pytest.fixture
def embedder(fake_embeddings: FakeEmbeddings) -> Embedder:
    """Provide Embedder backed by fake embeddings."""
    return Embedder(fake_embeddings, dimensions=TEST_DIMENSIONS, batch_size=100)


@pytest.fixture
async def session_factory():
    """
    Create in-memory SQLite async database for testing.

    Yields:
        async_sessionmaker: Session factory bound to a fresh schema
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_async_db(session_factory):
    """Provide a single session on the in-memory database."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def vector_index():
    """
    Create an in-memory Qdrant index with the test dimension.

    Yields:
        QdrantVectorIndex: Index with its collection already created
    """
    client = AsyncQdrantClient(location=":memory:")
    index = QdrantVectorIndex(
        client,
        collection_name="test_chunks",
        vector_size=TEST_DIMENSIONS,
        upsert_batch_size=100,
        retry_attempts=1,
    )
    await index.ensure_collection()
    yield index
    await index.close()


@pytest.fixture
def make_hit():
    """Provide a builder for RetrievalHit instances."""

    def build(text: str, score: float, filename: str = "guide.md", chunk_index: int = 0) -> RetrievalHit:
        return RetrievalHit(
            text=text,
            score=score,
            filename=filename,
            file_id=f"file-{filename}",
            chunk_index=chunk_index,
        )

    return build
