"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.

Dependencies: All config modules
System role: Central configuration aggregator for the package
"""

from functools import lru_cache

from pydantic import Field

from knowledge_rag.configs.base import BaseSettings
from knowledge_rag.configs.database import DatabaseSettings
from knowledge_rag.configs.embedding import EmbeddingSettings, LLMSettings
from knowledge_rag.configs.rag import RagSettings
from knowledge_rag.configs.vector_store import VectorStoreSettings


class Settings(BaseSettings):
    """Unified settings aggregating all config modules."""

    openai_api_key: str | None = Field(default=None, description="Shared provider key")

    # Aggregated settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    rag: RagSettings = Field(default_factory=RagSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are loaded once and cached.

    Returns:
        Settings: Application settings instance

    Usage:
        from knowledge_rag.configs import get_settings
        settings = get_settings()
    """
    return Settings()
