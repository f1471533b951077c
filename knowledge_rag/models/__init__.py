"""
Domain models shared across the knowledge RAG core.
"""

from knowledge_rag.models.chunk import Chunk, ChunkOptions
from knowledge_rag.models.context import (
    ChatMessage,
    ComposedContext,
    CompositionOptions,
    ContextTemplate,
    PreparedContext,
    TokenSafetyReport,
)
from knowledge_rag.models.ingestion import (
    DeletionResult,
    IngestionResult,
    IngestionStats,
    ReconciliationReport,
    ReindexResult,
    SourceFile,
)
from knowledge_rag.models.retrieval import (
    HitFilter,
    RetrievalHit,
    RetrievalOptions,
    RetrievalResult,
)

__all__ = [
    "Chunk",
    "ChunkOptions",
    "ChatMessage",
    "ComposedContext",
    "CompositionOptions",
    "ContextTemplate",
    "PreparedContext",
    "TokenSafetyReport",
    "DeletionResult",
    "IngestionResult",
    "IngestionStats",
    "ReconciliationReport",
    "ReindexResult",
    "SourceFile",
    "HitFilter",
    "RetrievalHit",
    "RetrievalOptions",
    "RetrievalResult",
]
