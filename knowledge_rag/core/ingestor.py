"""
Document ingestion pipeline.

Chunks a document, embeds every chunk in one batched call, persists the
chunk records and then upserts the vectors. Records are committed before
vectors are written and deleted before vectors are removed, so an
interrupted run leaves records without vectors or vectors without records,
both of which IndexReconciler repairs.

Dependencies: sqlalchemy, knowledge_rag.core, knowledge_rag.boundary
System role: Write path of the RAG pipeline
"""

import logging
import math
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_rag.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex
from knowledge_rag.boundary.vdb.vector_schemas import ChunkPayload, VectorFilter, VectorPoint
from knowledge_rag.core.chunker import Chunker
from knowledge_rag.core.embedder import Embedder
from knowledge_rag.core.exceptions import ChunkStoreError
from knowledge_rag.models.chunk import ChunkOptions
from knowledge_rag.models.ingestion import (
    DeletionResult,
    IngestionResult,
    IngestionStats,
    ReindexResult,
    SourceFile,
)
from knowledge_rag.observability.log_utils import log_exception_with_context, log_with_context

logger = logging.getLogger(__name__)

EMBEDDING_TOKEN_FACTOR = 1.3


class Ingestor:
    """
    Indexes documents into the chunk record store and the vector index.

    Embedding and vector errors propagate unchanged; database errors are
    raised as ChunkStoreError.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        chunker: Chunker,
        embedder: Embedder,
        vector_index: QdrantVectorIndex,
        chunk_options: ChunkOptions | None = None,
        crud: ChunkCRUD = chunk_crud,
    ) -> None:
        """
        Initialize ingestor.

        Args:
            session_factory: Async session factory for chunk records
            chunker: Text chunker
            embedder: Embedding client
            vector_index: Vector index for chunk vectors
            chunk_options: Chunk bounds (defaults: 400/50/80)
            crud: Chunk record CRUD
        """
        self._session_factory = session_factory
        self._chunker = chunker
        self._embedder = embedder
        self._index = vector_index
        self._chunk_options = chunk_options or ChunkOptions()
        self._crud = crud

    async def ingest_document(
        self,
        module_key: str,
        file_id: str,
        filename: str,
        text: str,
        domain: str | None = None,
    ) -> IngestionResult:
        """
        Chunk, embed and index one document.

        A document that yields no chunks returns an empty result without
        touching the embedder or either store.

        Args:
            module_key: Knowledge module the document belongs to
            file_id: Source document id
            filename: Source document display name
            text: Full document text
            domain: Optional knowledge domain tag

        Returns:
            IngestionResult with chunk, token and vector counts

        Raises:
            EmbeddingError: If embedding fails (nothing is stored)
            ChunkStoreError: If chunk records cannot be saved
            VectorStoreError: If vectors cannot be written (records remain)
        """
        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:ingest_document - Starting ingestion",
            module_key=module_key,
            file_id=file_id,
            source_file=filename,
            chars=len(text),
        )

        chunks = self._chunker.chunk(text, self._chunk_options)
        if not chunks:
            logger.warning(f"{__name__}:ingest_document - No chunks created for {filename}")
            return IngestionResult(file_id=file_id)

        vectors = await self._embedder.embed_batch([chunk.text for chunk in chunks])

        records = []
        points = []
        for chunk_index, (chunk, vector) in enumerate(zip(chunks, vectors)):
            vector_id = str(uuid.uuid4())
            records.append(
                {
                    "module_key": module_key,
                    "file_id": file_id,
                    "filename": filename,
                    "text": chunk.text,
                    "chunk_index": chunk_index,
                    "token_count": chunk.token_count,
                    "start_offset": chunk.start_offset,
                    "end_offset": chunk.end_offset,
                    "vector_id": vector_id,
                    "domain": domain,
                }
            )
            points.append(
                VectorPoint(
                    id=vector_id,
                    vector=vector,
                    payload=ChunkPayload(
                        module_key=module_key,
                        file_id=file_id,
                        filename=filename,
                        chunk_index=chunk_index,
                        text=chunk.text,
                        domain=domain,
                    ),
                )
            )

        try:
            async with self._session_factory() as session:
                saved = await self._crud.bulk_create(session, records)
                await session.commit()
        except SQLAlchemyError as e:
            log_exception_with_context(
                logger,
                f"{__name__}:ingest_document - Chunk record write failed",
                e,
                module_key=module_key,
                file_id=file_id,
            )
            raise ChunkStoreError(
                f"Failed to store chunk records: {e}",
                details={"module_key": module_key, "file_id": file_id},
            ) from e
        logger.info(f"{__name__}:ingest_document - Stored {len(saved)} chunk records")

        stored = await self._index.upsert_batch(points)
        logger.info(f"{__name__}:ingest_document - Stored {stored} vectors")

        total_tokens = sum(chunk.token_count for chunk in chunks)
        return IngestionResult(
            file_id=file_id,
            chunks_created=len(saved),
            total_tokens=total_tokens,
            embedding_tokens=math.ceil(total_tokens * EMBEDDING_TOKEN_FACTOR),
            vectors_stored=stored,
        )

    async def delete_file_chunks(self, module_key: str, file_id: str) -> DeletionResult:
        """
        Remove a document's chunk records, then its vectors.

        Returns:
            DeletionResult with record and vector counts
        """
        try:
            async with self._session_factory() as session:
                records = await self._crud.get_by_file(session, module_key, file_id)
                vector_ids = [record.vector_id for record in records]
                deleted = await self._crud.delete_by_file(session, module_key, file_id)
                await session.commit()
        except SQLAlchemyError as e:
            log_exception_with_context(
                logger,
                f"{__name__}:delete_file_chunks - Chunk record delete failed",
                e,
                module_key=module_key,
                file_id=file_id,
            )
            raise ChunkStoreError(
                f"Failed to delete chunk records: {e}",
                details={"module_key": module_key, "file_id": file_id},
            ) from e
        logger.info(f"{__name__}:delete_file_chunks - Deleted {deleted} chunk records for {file_id}")

        vectors_deleted = await self._index.delete(vector_ids)
        return DeletionResult(records_deleted=deleted, vectors_deleted=vectors_deleted)

    async def delete_module_chunks(self, module_key: str) -> DeletionResult:
        """
        Remove every chunk record of a module, then its vectors by filter.

        Returns:
            DeletionResult with record and vector counts
        """
        try:
            async with self._session_factory() as session:
                deleted = await self._crud.delete_by_module(session, module_key)
                await session.commit()
        except SQLAlchemyError as e:
            log_exception_with_context(
                logger,
                f"{__name__}:delete_module_chunks - Chunk record delete failed",
                e,
                module_key=module_key,
            )
            raise ChunkStoreError(
                f"Failed to delete module chunk records: {e}",
                details={"module_key": module_key},
            ) from e
        logger.info(f"{__name__}:delete_module_chunks - Deleted {deleted} chunk records for {module_key}")

        vectors_deleted = await self._index.delete_by_filter(VectorFilter(module_key=module_key))
        return DeletionResult(records_deleted=deleted, vectors_deleted=vectors_deleted)

    async def reindex_module(self, module_key: str, files: list[SourceFile]) -> ReindexResult:
        """
        Rebuild a module's index from the given documents.

        Deletes the module's chunks, then ingests each file in order.

        Returns:
            ReindexResult with file, chunk and token totals
        """
        logger.info(f"{__name__}:reindex_module - Re-indexing {module_key} ({len(files)} files)")
        await self.delete_module_chunks(module_key)

        total_chunks = 0
        total_tokens = 0
        for source in files:
            result = await self.ingest_document(
                module_key,
                source.file_id,
                source.filename,
                source.text,
                domain=source.domain,
            )
            total_chunks += result.chunks_created
            total_tokens += result.total_tokens

        logger.info(
            f"{__name__}:reindex_module - Complete: {len(files)} files, "
            f"{total_chunks} chunks, {total_tokens} tokens"
        )
        return ReindexResult(
            files_processed=len(files),
            total_chunks=total_chunks,
            total_tokens=total_tokens,
        )

    async def get_ingestion_stats(self, module_key: str) -> IngestionStats:
        """Chunk record totals and stored vector count for a module."""
        try:
            async with self._session_factory() as session:
                total_chunks, total_files, total_tokens = await self._crud.module_stats(session, module_key)
        except SQLAlchemyError as e:
            raise ChunkStoreError(f"Failed to read module stats: {e}", details={"module_key": module_key}) from e

        vector_count = await self._index.count(VectorFilter(module_key=module_key))
        return IngestionStats(
            total_chunks=total_chunks,
            total_files=total_files,
            total_tokens=total_tokens,
            vector_count=vector_count,
        )
