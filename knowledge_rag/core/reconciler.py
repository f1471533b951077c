"""
Consistency checks between chunk records and stored vectors.

Chunk records are the source of truth. A record whose vector is missing is
dangling; a vector in the module without a record is an orphan. Repair
re-embeds dangling records and deletes orphan vectors.

Dependencies: sqlalchemy, knowledge_rag.core, knowledge_rag.boundary
System role: Maintenance of the two-store write path
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_rag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from knowledge_rag.boundary.db.models.chunk_model import ChunkRecordModel
from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex
from knowledge_rag.boundary.vdb.vector_schemas import ChunkPayload, VectorFilter, VectorPoint
from knowledge_rag.core.embedder import Embedder
from knowledge_rag.core.exceptions import ChunkStoreError
from knowledge_rag.models.ingestion import ReconciliationReport
from knowledge_rag.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


def payload_from_record(record: ChunkRecordModel) -> ChunkPayload:
    return ChunkPayload(
        module_key=record.module_key,
        file_id=record.file_id,
        filename=record.filename,
        chunk_index=record.chunk_index,
        text=record.text,
        domain=record.domain,
    )


class IndexReconciler:
    """Detects and optionally repairs record/vector drift within a module."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedder: Embedder,
        vector_index: QdrantVectorIndex,
        crud: ChunkCRUD = chunk_crud,
    ) -> None:
        self._session_factory = session_factory
        self._embedder = embedder
        self._index = vector_index
        self._crud = crud

    async def reconcile_module(self, module_key: str, repair: bool = False) -> ReconciliationReport:
        """
        Compare a module's chunk records with its stored vectors.

        Args:
            module_key: Knowledge module to check
            repair: Restore dangling vectors from their records and delete orphans

        Returns:
            ReconciliationReport listing dangling and orphan vector ids and,
            when repairing, how many were fixed

        Raises:
            ChunkStoreError: If records cannot be read
            EmbeddingError, VectorStoreError: If repair fails
        """
        try:
            async with self._session_factory() as session:
                records = list(await self._crud.get_by_module(session, module_key))
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to read chunk records: {e}", details={"module_key": module_key}) from e

        stored = await self._index.scroll(VectorFilter(module_key=module_key))
        stored_ids = {point.id for point in stored}
        record_ids = {record.vector_id for record in records}

        dangling = [record for record in records if record.vector_id not in stored_ids]
        orphan_ids = sorted(stored_ids - record_ids)

        report = ReconciliationReport(
            module_key=module_key,
            records_checked=len(records),
            vectors_checked=len(stored),
            dangling_vector_ids=[record.vector_id for record in dangling],
            orphan_vector_ids=orphan_ids,
        )

        if repair and not report.consistent:
            report.vectors_restored = await self._restore(dangling)
            report.orphans_removed = await self._index.delete(orphan_ids)

        log_with_context(
            logger,
            logging.WARNING if not report.consistent else logging.INFO,
            f"{__name__}:reconcile_module - Reconciliation finished",
            module_key=module_key,
            dangling=len(report.dangling_vector_ids),
            orphans=len(report.orphan_vector_ids),
            repaired=repair,
        )
        return report

    async def _restore(self, records: list[ChunkRecordModel]) -> int:
        """Re-embed records and upsert their vectors under the recorded ids."""
        if not records:
            return 0
        vectors = await self._embedder.embed_batch([record.text for record in records])
        points = [
            VectorPoint(id=record.vector_id, vector=vector, payload=payload_from_record(record))
            for record, vector in zip(records, vectors)
        ]
        return await self._index.upsert_batch(points)
