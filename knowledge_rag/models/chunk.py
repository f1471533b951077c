"""
Chunk domain models.

A Chunk is a contiguous, token-bounded slice of a document's text produced
by the Chunker. ChunkOptions carries the chunking bounds.

Dependencies: pydantic
System role: Data structures for the chunking stage
"""

from pydantic import BaseModel, ConfigDict, Field


class ChunkOptions(BaseModel):
    """Token bounds for chunking."""

    max_tokens: int = Field(default=400, description="Upper token bound per chunk")
    min_tokens: int = Field(default=50, description="Chunks under this estimate are dropped")
    overlap_tokens: int = Field(default=80, description="Tokens of tail carried into the next chunk")


class Chunk(BaseModel):
    """Immutable slice of source text sized for embedding."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Chunk text (may start with an overlap tail)")
    token_count: int = Field(description="Estimated tokens, ceil(utf8 bytes / 4)")
    start_offset: int = Field(description="Character offset of new content in the source")
    end_offset: int = Field(description="Character offset just past the chunk's content")
