"""
Test suite for dependency injection container.

Tests factory functions for component creation and configuration, with
Qdrant in local in-memory mode and the record table creation patched out.

System role: Verification of DI container
"""

from unittest.mock import AsyncMock, patch

import pytest

from knowledge_rag import dependencies
from knowledge_rag.application.services import KnowledgeService
from knowledge_rag.configs import get_settings
from knowledge_rag.core.reranker import LLMReranker

_FACTORIES = (
    get_settings,
    dependencies.get_engine,
    dependencies.get_session_factory,
    dependencies.get_vector_index,
    dependencies.get_embedder,
    dependencies.get_reranker,
    dependencies.get_context_composer,
    dependencies.get_knowledge_service,
)


@pytest.fixture(autouse=True)
def local_environment(monkeypatch: pytest.MonkeyPatch):
    """Point settings at local stores and reset every cached factory."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("VECTOR_STORE_LOCATION", ":memory:")
    monkeypatch.setenv("RAG_CHUNK_MAX_TOKENS", "300")
    monkeypatch.setenv("RAG_MODEL_TOKEN_LIMIT", "120000")
    for factory in _FACTORIES:
        factory.cache_clear()
    yield
    for factory in _FACTORIES:
        factory.cache_clear()


class TestGetKnowledgeService:
    """Test suite for get_knowledge_service factory."""

    def test_get_knowledge_service_should_return_cached_instance(self) -> None:
        service = dependencies.get_knowledge_service()

        assert isinstance(service, KnowledgeService)
        assert dependencies.get_knowledge_service() is service

    def test_get_knowledge_service_should_apply_rag_settings(self) -> None:
        service = dependencies.get_knowledge_service()

        assert service.rag.chunk_max_tokens == 300
        assert service.ingestor._chunk_options.max_tokens == 300
        assert service.composer.model_token_limit == 120000

    def test_get_knowledge_service_should_share_index_and_embedder(self) -> None:
        service = dependencies.get_knowledge_service()

        assert service.retriever._index is dependencies.get_vector_index()
        assert service.ingestor._embedder is dependencies.get_embedder()
        assert isinstance(service.retriever._reranker, LLMReranker)


class TestInitializeStores:
    """Test suite for initialize_stores()."""

    @pytest.mark.asyncio
    async def test_initialize_stores_should_create_table_and_collection(self) -> None:
        # Arrange
        with patch("knowledge_rag.dependencies.create_tables", new_callable=AsyncMock) as mock_create_tables:
            # Act
            await dependencies.initialize_stores()

        # Assert
        mock_create_tables.assert_awaited_once_with(dependencies.get_engine())
        info = await dependencies.get_vector_index().collection_info()
        assert info.name == "ace_knowledge"
        assert info.vector_size == 1536
