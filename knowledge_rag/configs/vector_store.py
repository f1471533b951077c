"""
Vector store configuration settings.

Manages the Qdrant connection and collection layout used for chunk vectors.

Dependencies: pydantic, pydantic_settings
System role: Vector database configuration for RAG retrieval
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_rag.configs.base import BaseSettings


class VectorStoreSettings(BaseSettings):
    """Qdrant vector store configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VECTOR_STORE_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="http://localhost:6333", description="Qdrant server URL")
    api_key: str | None = Field(default=None, description="Qdrant API key (cloud deployments)")
    location: str | None = Field(
        default=None,
        description="Local mode location (':memory:' for dev); takes precedence over url",
    )
    collection_name: str = Field(default="ace_knowledge", description="Collection holding chunk vectors")
    vector_size: int = Field(default=1536, description="Embedding vector dimension")
    upsert_batch_size: int = Field(default=100, description="Points per upsert request")
    timeout_seconds: int = Field(default=30, description="Per-request timeout")
    retry_attempts: int = Field(default=3, description="Attempts for read operations")
