"""
Dependency injection container.

Cached factory functions that build the RAG components from settings.
Tests and embedding applications can bypass these and wire components
directly.

Dependencies: knowledge_rag.configs, knowledge_rag.core, knowledge_rag.boundary
System role: DI container for service injection
"""

from functools import lru_cache

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from knowledge_rag.application.services.knowledge_service import KnowledgeService
from knowledge_rag.boundary.db.connection import (
    create_tables,
    get_async_engine,
    get_async_session_factory,
)
from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex
from knowledge_rag.configs import get_settings
from knowledge_rag.core.chunker import Chunker
from knowledge_rag.core.context_composer import ContextComposer
from knowledge_rag.core.embedder import Embedder
from knowledge_rag.core.ingestor import Ingestor
from knowledge_rag.core.reconciler import IndexReconciler
from knowledge_rag.core.reranker import LLMReranker
from knowledge_rag.core.retriever import Retriever
from knowledge_rag.models.chunk import ChunkOptions

# Provider SDKs read OPENAI_API_KEY from os.environ, not from Settings
load_dotenv()


@lru_cache
def get_engine() -> AsyncEngine:
    return get_async_engine()


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_async_session_factory(get_engine())


@lru_cache
def get_vector_index() -> QdrantVectorIndex:
    return QdrantVectorIndex.from_settings(get_settings().vector_store)


@lru_cache
def get_embedder() -> Embedder:
    settings = get_settings()
    return Embedder.from_settings(settings.embedding, api_key=settings.openai_api_key)


@lru_cache
def get_reranker() -> LLMReranker:
    settings = get_settings()
    return LLMReranker.from_settings(
        settings.llm,
        window=settings.rag.rerank_window,
        text_limit=settings.rag.rerank_text_limit,
        api_key=settings.openai_api_key,
    )


@lru_cache
def get_context_composer() -> ContextComposer:
    rag = get_settings().rag
    return ContextComposer(
        formatting_overhead_tokens=rag.formatting_overhead_tokens,
        model_token_limit=rag.model_token_limit,
    )


@lru_cache
def get_knowledge_service() -> KnowledgeService:
    """
    Get the fully wired knowledge service.

    Returns:
        KnowledgeService: Service backed by Postgres, Qdrant and OpenAI

    Usage:
        await initialize_stores()
        service = get_knowledge_service()
    """
    settings = get_settings()
    rag = settings.rag
    session_factory = get_session_factory()
    embedder = get_embedder()
    vector_index = get_vector_index()

    ingestor = Ingestor(
        session_factory=session_factory,
        chunker=Chunker(),
        embedder=embedder,
        vector_index=vector_index,
        chunk_options=ChunkOptions(
            max_tokens=rag.chunk_max_tokens,
            min_tokens=rag.chunk_min_tokens,
            overlap_tokens=rag.chunk_overlap_tokens,
        ),
    )
    return KnowledgeService(
        ingestor=ingestor,
        retriever=Retriever(embedder, vector_index, reranker=get_reranker()),
        composer=get_context_composer(),
        reconciler=IndexReconciler(session_factory, embedder, vector_index),
        rag_settings=rag,
    )


async def initialize_stores() -> None:
    """Create the chunk record table and the vector collection if missing."""
    await create_tables(get_engine())
    await get_vector_index().ensure_collection()
