"""
Vector database boundary layer.

Provides the Qdrant-backed vector index and its typed schemas.

Dependencies: qdrant_client
System role: Vector store adapter for RAG retrieval
"""

from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex, build_filter
from knowledge_rag.boundary.vdb.vector_schemas import (
    ChunkPayload,
    CollectionInfo,
    StoredVector,
    VectorFilter,
    VectorMatch,
    VectorPoint,
)

__all__ = [
    "QdrantVectorIndex",
    "build_filter",
    "ChunkPayload",
    "CollectionInfo",
    "StoredVector",
    "VectorFilter",
    "VectorMatch",
    "VectorPoint",
]
