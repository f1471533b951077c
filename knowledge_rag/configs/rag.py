"""
RAG pipeline tuning settings.

Chunking, retrieval, reranking and context composition defaults.

Dependencies: pydantic, pydantic_settings
System role: Pipeline parameter configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_rag.configs.base import BaseSettings


class RagSettings(BaseSettings):
    """Defaults for the chunk / retrieve / compose pipeline."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RAG_",
        case_sensitive=False,
        extra="ignore",
    )

    # Chunking
    chunk_max_tokens: int = Field(default=400, description="Upper token bound per chunk")
    chunk_min_tokens: int = Field(default=50, description="Chunks below this are dropped")
    chunk_overlap_tokens: int = Field(default=80, description="Overlap carried between chunks")

    # Retrieval
    top_k: int = Field(default=10, description="Hits returned per retrieval")
    rerank_window: int = Field(default=12, description="Max candidates sent to the rerank LLM")
    rerank_text_limit: int = Field(default=900, description="Characters per candidate in rerank prompt")

    # Composition
    context_max_tokens: int = Field(default=8000, description="Token budget for composed context")
    formatting_overhead_tokens: int = Field(default=400, description="Reserved for template text")
    history_max_pairs: int = Field(default=8, description="Conversation pairs kept in prompt")
    model_token_limit: int = Field(default=190000, description="Total prompt+reply token ceiling")
    expected_reply_tokens: int = Field(default=4000, description="Reserved for the model reply")
