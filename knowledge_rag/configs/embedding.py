"""
Embedding and rerank LLM provider settings.

Dependencies: pydantic, pydantic_settings
System role: Model provider configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_rag.configs.base import BaseSettings


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Provider API key (falls back to OPENAI_API_KEY)")
    model: str = Field(default="text-embedding-3-large", description="Embedding model ID")
    dimensions: int = Field(default=1536, description="Requested output dimensionality")
    batch_size: int = Field(default=100, description="Max texts per embedding request")
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")


class LLMSettings(BaseSettings):
    """Chat model used only for rerank scoring."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RERANK_LLM_",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Provider API key (falls back to OPENAI_API_KEY)")
    model: str = Field(default="gpt-4o-mini", description="Chat model ID")
    max_tokens: int = Field(default=2000, description="Completion token cap")
    temperature: float = Field(default=0.0, description="Sampling temperature")
    timeout_seconds: float = Field(default=30.0, description="Per-request timeout")
