"""
Core RAG logic.

Contains the exception hierarchy and the pure pipeline components. The
components that talk to the stores (Ingestor, Retriever, LLMReranker,
IndexReconciler) are imported from their own modules.
"""

from knowledge_rag.core.exceptions import (
    ChunkStoreError,
    EmbeddingError,
    KnowledgeRagError,
    RerankError,
    ValidationError,
    VectorStoreError,
)
from knowledge_rag.core.chunker import Chunker
from knowledge_rag.core.context_composer import ContextComposer
from knowledge_rag.core.module_hints import ModuleKind, expand_query
from knowledge_rag.core.tokens import estimate_tokens

__all__ = [
    # Exceptions
    "KnowledgeRagError",
    "ValidationError",
    "EmbeddingError",
    "VectorStoreError",
    "ChunkStoreError",
    "RerankError",
    # Pure components
    "Chunker",
    "ContextComposer",
    "ModuleKind",
    "expand_query",
    "estimate_tokens",
]
