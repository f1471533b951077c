"""
Retrieval request and result models.

Dependencies: pydantic
System role: Data structures exchanged between Retriever and ContextComposer
"""

from pydantic import BaseModel, Field


class HitFilter(BaseModel):
    """Extra conjunctive filter applied on top of the module filter."""

    file_id: str | None = Field(default=None, description="Restrict to one file")
    domain: str | None = Field(default=None, description="Restrict to one knowledge domain")


class RetrievalOptions(BaseModel):
    """Options for a single retrieval call."""

    top_k: int = Field(default=10, ge=1, description="Hits returned")
    score_threshold: float = Field(default=0.0, description="Minimum similarity (loosened x0.8 for search)")
    rerank: bool = Field(default=False, description="Rerank candidates with the LLM")
    rerank_top_k: int | None = Field(default=None, ge=1, description="Reranked head size (defaults to top_k)")
    filter: HitFilter | None = Field(default=None, description="Optional file/domain filter")


class RetrievalHit(BaseModel):
    """One retrieved chunk, ready for composition."""

    text: str
    score: float
    filename: str
    file_id: str
    chunk_index: int
    domain: str | None = None


class RetrievalResult(BaseModel):
    """Hits for a query plus the size of the candidate pool they came from."""

    hits: list[RetrievalHit] = Field(default_factory=list)
    total_retrieved: int = Field(default=0, description="Candidates returned by the vector search")
    query: str = Field(description="Original, unexpanded query")
