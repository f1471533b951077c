"""
Chunk record CRUD operations.

Queries chunk records by module, file and vector id, and aggregates
per-module statistics.

Dependencies: sqlalchemy, knowledge_rag.boundary.db.models
System role: Chunk record persistence operations
"""

from typing import Any, Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_rag.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_rag.boundary.db.models.chunk_model import ChunkRecordModel


class ChunkCRUD(BaseCRUD[ChunkRecordModel]):
    """
    CRUD operations for ChunkRecordModel.

    Extends BaseCRUD with module/file scoped queries.
    """

    def __init__(self) -> None:
        """Initialize ChunkCRUD with ChunkRecordModel."""
        super().__init__(ChunkRecordModel)

    async def bulk_create(
        self,
        session: AsyncSession,
        records: Sequence[dict[str, Any]],
    ) -> list[ChunkRecordModel]:
        """
        Insert chunk records for one document.

        Args:
            session: Async database session
            records: Field values per chunk

        Returns:
            Created records in chunk order
        """
        return await self.create_many(session, records)

    async def get_by_file(
        self,
        session: AsyncSession,
        module_key: str,
        file_id: str,
    ) -> Sequence[ChunkRecordModel]:
        """
        Retrieve a document's chunk records ordered by chunk_index.

        Args:
            session: Async database session
            module_key: Knowledge module key
            file_id: Source document id

        Returns:
            Sequence of ChunkRecordModels for the file
        """
        stmt = (
            select(ChunkRecordModel)
            .where(
                ChunkRecordModel.module_key == module_key,
                ChunkRecordModel.file_id == file_id,
            )
            .order_by(ChunkRecordModel.chunk_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_module(
        self,
        session: AsyncSession,
        module_key: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[ChunkRecordModel]:
        """
        Retrieve all chunk records of a module.

        Args:
            session: Async database session
            module_key: Knowledge module key
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            Records ordered by file then chunk_index
        """
        stmt = (
            select(ChunkRecordModel)
            .where(ChunkRecordModel.module_key == module_key)
            .order_by(ChunkRecordModel.file_id, ChunkRecordModel.chunk_index)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_vector_ids(
        self,
        session: AsyncSession,
        module_key: str,
        file_id: str | None = None,
    ) -> list[str]:
        """Vector ids referenced by a module's (or one file's) records."""
        stmt = select(ChunkRecordModel.vector_id).where(ChunkRecordModel.module_key == module_key)
        if file_id is not None:
            stmt = stmt.where(ChunkRecordModel.file_id == file_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_vector_ids(
        self,
        session: AsyncSession,
        vector_ids: Sequence[str],
    ) -> Sequence[ChunkRecordModel]:
        """Retrieve records by vector id."""
        if not vector_ids:
            return []
        stmt = select(ChunkRecordModel).where(ChunkRecordModel.vector_id.in_(list(vector_ids)))
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_by_file(self, session: AsyncSession, module_key: str, file_id: str) -> int:
        """
        Delete a document's chunk records.

        Returns:
            Number of records deleted
        """
        return await self.delete_where(
            session,
            ChunkRecordModel.module_key == module_key,
            ChunkRecordModel.file_id == file_id,
        )

    async def delete_by_module(self, session: AsyncSession, module_key: str) -> int:
        """
        Delete every chunk record of a module.

        Returns:
            Number of records deleted
        """
        return await self.delete_where(session, ChunkRecordModel.module_key == module_key)

    async def count_by_module(self, session: AsyncSession, module_key: str) -> int:
        """Number of chunk records in a module."""
        return await self.count_where(session, ChunkRecordModel.module_key == module_key)

    async def module_stats(self, session: AsyncSession, module_key: str) -> tuple[int, int, int]:
        """
        Aggregate chunk counts for a module.

        Returns:
            (total_chunks, total_files, total_tokens)
        """
        stmt = select(
            func.count(ChunkRecordModel.id),
            func.count(distinct(ChunkRecordModel.file_id)),
            func.coalesce(func.sum(ChunkRecordModel.token_count), 0),
        ).where(ChunkRecordModel.module_key == module_key)
        result = await session.execute(stmt)
        total_chunks, total_files, total_tokens = result.one()
        return int(total_chunks), int(total_files), int(total_tokens)


chunk_crud = ChunkCRUD()
