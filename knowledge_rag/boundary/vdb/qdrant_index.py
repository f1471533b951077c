"""
Qdrant-backed vector index for chunk vectors.

Wraps AsyncQdrantClient with typed payloads, conjunctive payload filters,
batched upserts and retried reads.

Dependencies: qdrant_client, tenacity, knowledge_rag.configs
System role: Vector store adapter for RAG retrieval
"""

import logging
from typing import Any, Awaitable, Callable, Sequence

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from knowledge_rag.boundary.vdb.vector_schemas import (
    ChunkPayload,
    CollectionInfo,
    StoredVector,
    VectorFilter,
    VectorMatch,
    VectorPoint,
)
from knowledge_rag.configs.vector_store import VectorStoreSettings
from knowledge_rag.core.exceptions import VectorStoreError
from knowledge_rag.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

INDEXED_PAYLOAD_FIELDS = ("module_key", "file_id")
SCROLL_PAGE_SIZE = 256
TRANSIENT_ERRORS = (ResponseHandlingException, UnexpectedResponse)


def build_filter(vector_filter: VectorFilter | None) -> models.Filter | None:
    """
    Convert a VectorFilter into a Qdrant filter of AND-ed match conditions.

    Returns:
        Filter, or None when no field is set
    """
    if vector_filter is None or vector_filter.is_empty:
        return None
    return models.Filter(
        must=[
            models.FieldCondition(key=key, match=models.MatchValue(value=value))
            for key, value in vector_filter.conditions().items()
        ]
    )


class QdrantVectorIndex:
    """
    Vector index over one Qdrant collection.

    Read operations (search, count, retrieve_ids, scroll) are retried with
    exponential backoff on transport errors. Every failure surfaces as
    VectorStoreError carrying the failed operation.
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection_name: str = "ace_knowledge",
        vector_size: int = 1536,
        upsert_batch_size: int = 100,
        retry_attempts: int = 3,
    ) -> None:
        """
        Initialize index.

        Args:
            client: Connected async Qdrant client
            collection_name: Collection holding chunk vectors
            vector_size: Embedding dimension
            upsert_batch_size: Points per upsert request
            retry_attempts: Attempts for read operations
        """
        self._client = client
        self.collection_name = collection_name
        self.vector_size = vector_size
        self._upsert_batch_size = upsert_batch_size
        self._retry_attempts = max(retry_attempts, 1)

    @classmethod
    def from_settings(cls, settings: VectorStoreSettings) -> "QdrantVectorIndex":
        """Build the index and its client from vector store settings."""
        if settings.location:
            logger.info(f"{__name__}:from_settings - Using local Qdrant at {settings.location}")
            client = AsyncQdrantClient(location=settings.location)
        else:
            client = AsyncQdrantClient(
                url=settings.url,
                api_key=settings.api_key,
                timeout=settings.timeout_seconds,
            )
        return cls(
            client=client,
            collection_name=settings.collection_name,
            vector_size=settings.vector_size,
            upsert_batch_size=settings.upsert_batch_size,
            retry_attempts=settings.retry_attempts,
        )

    async def close(self) -> None:
        await self._client.close()

    async def _retrying(self, operation: str, method: Callable[..., Awaitable[Any]], **kwargs: Any) -> Any:
        """Call a client read method with retry, mapping failures to VectorStoreError."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential_jitter(multiplier=0.5, max=10, jitter=1),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:{operation} - Retry {retry_state.attempt_number}/"
                f"{self._retry_attempts} after transport error"
            ),
            reraise=True,
        )
        try:
            return await retrying(method, **kwargs)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:{operation} - Vector index call failed",
                e,
                collection=self.collection_name,
            )
            raise VectorStoreError(
                f"Vector index {operation} failed: {e}",
                operation=operation,
                details={"collection": self.collection_name},
            ) from e

    async def ensure_collection(self) -> None:
        """
        Create the collection and any missing payload indexes.

        Idempotent. An existing collection keeps its points; its vector size
        must match and missing module_key/file_id indexes are added.

        Raises:
            VectorStoreError: If the collection cannot be checked or created,
                or exists with a different vector size
        """
        try:
            if await self._client.collection_exists(self.collection_name):
                info = await self._client.get_collection(collection_name=self.collection_name)
                vectors = info.config.params.vectors
                if isinstance(vectors, models.VectorParams) and vectors.size != self.vector_size:
                    raise VectorStoreError(
                        f"Collection {self.collection_name} has vector size {vectors.size}, "
                        f"expected {self.vector_size}",
                        operation="ensure_collection",
                        details={"collection": self.collection_name},
                    )
                indexed = set(info.payload_schema or {})
            else:
                await self._client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(
                        size=self.vector_size,
                        distance=models.Distance.COSINE,
                    ),
                )
                indexed = set()
                logger.info(
                    f"{__name__}:ensure_collection - Created collection {self.collection_name} "
                    f"(size={self.vector_size}, distance=cosine)"
                )

            for field_name in INDEXED_PAYLOAD_FIELDS:
                if field_name in indexed:
                    continue
                await self._client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
        except VectorStoreError:
            raise
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:ensure_collection - Failed",
                e,
                collection=self.collection_name,
            )
            raise VectorStoreError(
                f"Failed to ensure collection {self.collection_name}: {e}",
                operation="ensure_collection",
            ) from e

    async def upsert(self, id: str, vector: list[float], payload: ChunkPayload) -> None:
        """Insert or replace a single point."""
        await self.upsert_batch([VectorPoint(id=id, vector=vector, payload=payload)])

    async def upsert_batch(self, points: Sequence[VectorPoint]) -> int:
        """
        Insert or replace points in sequential batches.

        Each batch waits for the write to be applied before the next is sent.

        Args:
            points: Points to store

        Returns:
            int: Number of points written

        Raises:
            VectorStoreError: On the first failed batch (earlier batches stay written)
        """
        written = 0
        for start in range(0, len(points), self._upsert_batch_size):
            batch = points[start : start + self._upsert_batch_size]
            try:
                await self._client.upsert(
                    collection_name=self.collection_name,
                    points=[
                        models.PointStruct(
                            id=point.id,
                            vector=point.vector,
                            payload=point.payload.model_dump(),
                        )
                        for point in batch
                    ],
                    wait=True,
                )
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{__name__}:upsert_batch - Batch failed",
                    e,
                    collection=self.collection_name,
                    batch_start=start,
                    written=written,
                )
                raise VectorStoreError(
                    f"Upsert failed: {e}",
                    operation="upsert",
                    details={"batch_start": start, "written": written},
                ) from e
            written += len(batch)

        if written:
            logger.debug(f"{__name__}:upsert_batch - Upserted {written} points")
        return written

    async def search(
        self,
        query_vector: list[float],
        top_k: int,
        filter: VectorFilter | None = None,
        score_threshold: float | None = None,
    ) -> list[VectorMatch]:
        """
        Nearest neighbours by cosine similarity, best first.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of matches
            filter: Conjunctive payload filter
            score_threshold: Minimum similarity (None or 0 disables)

        Returns:
            list[VectorMatch]: Matches sorted by descending score
        """
        response = await self._retrying(
            "search",
            self._client.query_points,
            collection_name=self.collection_name,
            query=query_vector,
            limit=top_k,
            query_filter=build_filter(filter),
            score_threshold=score_threshold or None,
            with_payload=True,
        )
        return [
            VectorMatch(id=str(point.id), score=point.score, payload=ChunkPayload(**point.payload))
            for point in response.points
        ]

    async def delete(self, ids: Sequence[str]) -> int:
        """
        Delete points by id.

        Returns:
            int: Number of ids submitted for deletion
        """
        if not ids:
            return 0
        try:
            await self._client.delete(
                collection_name=self.collection_name,
                points_selector=models.PointIdsList(points=list(ids)),
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Delete failed: {e}", operation="delete") from e
        logger.debug(f"{__name__}:delete - Deleted {len(ids)} points")
        return len(ids)

    async def delete_by_filter(self, filter: VectorFilter) -> int:
        """
        Delete every point matching the filter.

        An empty filter is refused (warning, nothing deleted) so the whole
        collection is never wiped by accident.

        Returns:
            int: Number of points matched before deletion
        """
        if filter.is_empty:
            logger.warning(f"{__name__}:delete_by_filter - Refusing to delete with an empty filter")
            return 0

        matched = await self.count(filter)
        try:
            await self._client.delete(
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(filter=build_filter(filter)),
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(
                f"Delete by filter failed: {e}",
                operation="delete",
                details=filter.conditions(),
            ) from e
        return matched

    async def count(self, filter: VectorFilter | None = None) -> int:
        """Exact number of points matching the filter."""
        result = await self._retrying(
            "count",
            self._client.count,
            collection_name=self.collection_name,
            count_filter=build_filter(filter),
            exact=True,
        )
        return result.count

    async def retrieve_ids(self, ids: Sequence[str]) -> set[str]:
        """Subset of ids that exist in the collection."""
        if not ids:
            return set()

        records = await self._retrying(
            "retrieve",
            self._client.retrieve,
            collection_name=self.collection_name,
            ids=list(ids),
            with_payload=False,
            with_vectors=False,
        )
        return {str(record.id) for record in records}

    async def scroll(self, filter: VectorFilter | None = None) -> list[StoredVector]:
        """All points matching the filter, without vectors."""
        stored: list[StoredVector] = []
        offset = None

        while True:
            records, offset = await self._retrying(
                "scroll",
                self._client.scroll,
                collection_name=self.collection_name,
                scroll_filter=build_filter(filter),
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
            stored.extend(
                StoredVector(id=str(record.id), payload=ChunkPayload(**record.payload))
                for record in records
            )
            if offset is None:
                return stored

    async def collection_info(self) -> CollectionInfo:
        """Point count, dimension and status of the collection."""
        info = await self._retrying(
            "collection_info",
            self._client.get_collection,
            collection_name=self.collection_name,
        )
        vectors = info.config.params.vectors
        size = vectors.size if isinstance(vectors, models.VectorParams) else self.vector_size
        return CollectionInfo(
            name=self.collection_name,
            points_count=info.points_count or 0,
            vector_size=size,
            status=str(getattr(info.status, "value", info.status)),
        )
