"""
Database models package.

Exports:
  - ChunkRecordModel: Indexed chunk record

Dependencies: sqlalchemy, knowledge_rag.boundary.db.base
"""

from knowledge_rag.boundary.db.models.chunk_model import ChunkRecordModel

__all__ = ["ChunkRecordModel"]
