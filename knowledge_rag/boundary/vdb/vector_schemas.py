"""
Vector database schemas.

Pydantic models for vector operations (points, payloads, filters, matches).
The payload is an explicit model so every point carries the same fields.

Dependencies: pydantic
System role: Type definitions for vector operations
"""

from typing import Any

from pydantic import BaseModel, Field


class ChunkPayload(BaseModel):
    """
    Metadata stored alongside each chunk vector.

    module_key, file_id and domain are the filterable fields.
    """

    module_key: str = Field(description="Knowledge module the chunk belongs to")
    file_id: str = Field(description="Source document id")
    filename: str = Field(description="Source document display name")
    chunk_index: int = Field(description="Chunk position in its document")
    text: str = Field(description="Chunk text")
    domain: str | None = Field(default=None, description="Optional knowledge domain tag")


class VectorFilter(BaseModel):
    """Conjunctive equality filter over payload fields."""

    module_key: str | None = None
    file_id: str | None = None
    domain: str | None = None

    def conditions(self) -> dict[str, Any]:
        """Payload field -> required value, for every field that is set."""
        return self.model_dump(exclude_none=True)

    @property
    def is_empty(self) -> bool:
        return not self.conditions()


class VectorPoint(BaseModel):
    """Vector with its id and payload, ready to upsert."""

    id: str = Field(description="Point id (UUID string)")
    vector: list[float] = Field(description="Embedding vector")
    payload: ChunkPayload


class VectorMatch(BaseModel):
    """Single result from vector search."""

    id: str
    score: float = Field(description="Cosine similarity")
    payload: ChunkPayload


class StoredVector(BaseModel):
    """Stored point without its vector, as returned by scroll."""

    id: str
    payload: ChunkPayload


class CollectionInfo(BaseModel):
    """Summary of the chunk collection."""

    name: str
    points_count: int = 0
    vector_size: int
    status: str
