"""
CRUD operations for database models.

Usage:
    from knowledge_rag.boundary.db.CRUD import chunk_crud

    async with session_factory() as session:
        records = await chunk_crud.get_by_file(session, module_key, file_id)
"""

from knowledge_rag.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_rag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud

__all__ = [
    "BaseCRUD",
    "ChunkCRUD",
    "chunk_crud",
]
