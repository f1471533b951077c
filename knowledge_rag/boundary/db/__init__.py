"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - ChunkRecordModel: Indexed chunk record
  - get_async_engine, get_async_session_factory, create_tables: Connection helpers
"""

from knowledge_rag.boundary.db.base import Base, TimestampMixin, UUIDMixin
from knowledge_rag.boundary.db.connection import (
    create_tables,
    get_async_engine,
    get_async_session_factory,
)
from knowledge_rag.boundary.db.models import ChunkRecordModel

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "ChunkRecordModel",
    "create_tables",
    "get_async_engine",
    "get_async_session_factory",
]
