"""
Test suite for QdrantVectorIndex.

Runs against Qdrant's in-memory local mode: collection setup, batched
upserts, filtered search, counting, deletion safeguards and error mapping.

System role: Verification of the vector store adapter
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from qdrant_client import AsyncQdrantClient, models

from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex, build_filter
from knowledge_rag.boundary.vdb.vector_schemas import ChunkPayload, VectorFilter, VectorPoint
from knowledge_rag.core.exceptions import VectorStoreError

DIMENSIONS = 16
POINT_IDS = [f"00000000-0000-4000-8000-{i:012d}" for i in range(20)]


def _one_hot(position: int) -> list[float]:
    vector = [0.0] * DIMENSIONS
    vector[position % DIMENSIONS] = 1.0
    return vector


def _point(i: int, module_key: str = "linkedin-post", file_id: str = "file-1", domain: str | None = None) -> VectorPoint:
    return VectorPoint(
        id=POINT_IDS[i],
        vector=_one_hot(i),
        payload=ChunkPayload(
            module_key=module_key,
            file_id=file_id,
            filename=f"{file_id}.md",
            chunk_index=i,
            text=f"chunk {i}",
            domain=domain,
        ),
    )


class TestBuildFilter:
    """Test suite for build_filter()."""

    def test_build_filter_should_return_none_for_empty_filter(self) -> None:
        assert build_filter(None) is None
        assert build_filter(VectorFilter()) is None

    def test_build_filter_should_and_every_set_field(self) -> None:
        qdrant_filter = build_filter(VectorFilter(module_key="blog-post", file_id="f-1"))

        assert qdrant_filter is not None
        assert {condition.key for condition in qdrant_filter.must} == {"module_key", "file_id"}
        assert not qdrant_filter.should


class TestQdrantVectorIndexCollection:
    """Test suite for collection management."""

    @pytest.mark.asyncio
    async def test_ensure_collection_should_be_idempotent(self, vector_index: QdrantVectorIndex) -> None:
        # Act
        await vector_index.ensure_collection()
        info = await vector_index.collection_info()

        # Assert
        assert info.name == "test_chunks"
        assert info.vector_size == DIMENSIONS
        assert info.points_count == 0

    @pytest.mark.asyncio
    async def test_ensure_collection_should_index_existing_collection_and_keep_points(self) -> None:
        # Arrange: collection created outside the index, without payload indexes
        client = AsyncQdrantClient(location=":memory:")
        await client.create_collection(
            collection_name="external",
            vectors_config=models.VectorParams(size=DIMENSIONS, distance=models.Distance.COSINE),
        )
        index = QdrantVectorIndex(client, collection_name="external", vector_size=DIMENSIONS)
        await index.upsert_batch([_point(0)])

        # Act
        with patch.object(client, "create_payload_index", wraps=client.create_payload_index) as index_spy:
            await index.ensure_collection()

        # Assert
        assert sorted(call.kwargs["field_name"] for call in index_spy.call_args_list) == ["file_id", "module_key"]
        assert await index.count() == 1
        await index.close()

    @pytest.mark.asyncio
    async def test_ensure_collection_should_only_add_missing_indexes(self) -> None:
        # Arrange
        client = MagicMock(spec=AsyncQdrantClient)
        client.collection_exists = AsyncMock(return_value=True)
        client.get_collection = AsyncMock(
            return_value=MagicMock(
                config=MagicMock(
                    params=MagicMock(
                        vectors=models.VectorParams(size=DIMENSIONS, distance=models.Distance.COSINE)
                    )
                ),
                payload_schema={"module_key": MagicMock()},
            )
        )
        client.create_collection = AsyncMock()
        client.create_payload_index = AsyncMock()
        index = QdrantVectorIndex(client, collection_name="existing", vector_size=DIMENSIONS)

        # Act
        await index.ensure_collection()

        # Assert
        client.create_collection.assert_not_awaited()
        client.create_payload_index.assert_awaited_once()
        assert client.create_payload_index.call_args.kwargs["field_name"] == "file_id"

    @pytest.mark.asyncio
    async def test_ensure_collection_should_reject_vector_size_mismatch(self) -> None:
        # Arrange
        client = AsyncQdrantClient(location=":memory:")
        await client.create_collection(
            collection_name="wrong_size",
            vectors_config=models.VectorParams(size=8, distance=models.Distance.COSINE),
        )
        index = QdrantVectorIndex(client, collection_name="wrong_size", vector_size=DIMENSIONS)

        # Act
        with pytest.raises(VectorStoreError) as exc_info:
            await index.ensure_collection()

        # Assert
        assert exc_info.value.details["operation"] == "ensure_collection"
        assert "vector size 8" in exc_info.value.message
        await index.close()


class TestQdrantVectorIndexWrites:
    """Test suite for upsert and delete operations."""

    @pytest.mark.asyncio
    async def test_upsert_batch_should_write_in_groups(self) -> None:
        # Arrange
        client = AsyncQdrantClient(location=":memory:")
        index = QdrantVectorIndex(client, collection_name="batched", vector_size=DIMENSIONS, upsert_batch_size=3)
        await index.ensure_collection()
        points = [_point(i) for i in range(7)]

        # Act
        with patch.object(client, "upsert", wraps=client.upsert) as upsert_spy:
            written = await index.upsert_batch(points)

        # Assert
        assert written == 7
        assert upsert_spy.call_count == 3
        assert all(call.kwargs["wait"] is True for call in upsert_spy.call_args_list)
        assert await index.count() == 7
        await index.close()

    @pytest.mark.asyncio
    async def test_upsert_should_replace_existing_point(self, vector_index: QdrantVectorIndex) -> None:
        point = _point(0)
        await vector_index.upsert(point.id, point.vector, point.payload)
        await vector_index.upsert(point.id, point.vector, point.payload.model_copy(update={"text": "updated"}))

        stored = await vector_index.scroll()

        assert len(stored) == 1
        assert stored[0].payload.text == "updated"

    @pytest.mark.asyncio
    async def test_delete_should_remove_points_by_id(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(i) for i in range(4)])

        deleted = await vector_index.delete(POINT_IDS[:2])

        assert deleted == 2
        assert await vector_index.retrieve_ids(POINT_IDS[:4]) == set(POINT_IDS[2:4])

    @pytest.mark.asyncio
    async def test_delete_should_skip_empty_id_list(self, vector_index: QdrantVectorIndex) -> None:
        assert await vector_index.delete([]) == 0

    @pytest.mark.asyncio
    async def test_delete_by_filter_should_refuse_empty_filter(self, vector_index: QdrantVectorIndex) -> None:
        # Arrange
        await vector_index.upsert_batch([_point(i) for i in range(3)])

        # Act
        deleted = await vector_index.delete_by_filter(VectorFilter())

        # Assert
        assert deleted == 0
        assert await vector_index.count() == 3

    @pytest.mark.asyncio
    async def test_delete_by_filter_should_remove_only_matching_points(
        self, vector_index: QdrantVectorIndex
    ) -> None:
        await vector_index.upsert_batch(
            [_point(0, module_key="blog-post"), _point(1, module_key="blog-post"), _point(2, module_key="x-thread")]
        )

        deleted = await vector_index.delete_by_filter(VectorFilter(module_key="blog-post"))

        assert deleted == 2
        assert await vector_index.count() == 1
        assert await vector_index.count(VectorFilter(module_key="x-thread")) == 1


class TestQdrantVectorIndexReads:
    """Test suite for search, count, retrieve and scroll."""

    @pytest.mark.asyncio
    async def test_search_should_return_best_match_first(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(i) for i in range(5)])

        matches = await vector_index.search(_one_hot(3), top_k=2)

        assert len(matches) == 2
        assert matches[0].id == POINT_IDS[3]
        assert matches[0].score == pytest.approx(1.0)
        assert matches[0].payload.chunk_index == 3
        assert matches[0].score >= matches[1].score

    @pytest.mark.asyncio
    async def test_search_should_apply_conjunctive_filter(self, vector_index: QdrantVectorIndex) -> None:
        # Arrange
        await vector_index.upsert_batch(
            [
                _point(0, module_key="blog-post", file_id="a"),
                _point(1, module_key="blog-post", file_id="b"),
                _point(2, module_key="x-thread", file_id="a"),
            ]
        )

        # Act
        matches = await vector_index.search(
            _one_hot(2), top_k=10, filter=VectorFilter(module_key="blog-post", file_id="a")
        )

        # Assert
        assert [match.id for match in matches] == [POINT_IDS[0]]

    @pytest.mark.asyncio
    async def test_search_should_apply_score_threshold(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(i) for i in range(4)])

        matches = await vector_index.search(_one_hot(1), top_k=10, score_threshold=0.5)

        assert [match.id for match in matches] == [POINT_IDS[1]]

    @pytest.mark.asyncio
    async def test_count_should_filter_by_domain(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(0, domain="sales"), _point(1, domain="hr"), _point(2)])

        assert await vector_index.count(VectorFilter(domain="sales")) == 1
        assert await vector_index.count(VectorFilter(module_key="linkedin-post")) == 3

    @pytest.mark.asyncio
    async def test_scroll_should_return_all_payloads(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(i, file_id="doc") for i in range(6)])

        stored = await vector_index.scroll(VectorFilter(file_id="doc"))

        assert sorted(point.payload.chunk_index for point in stored) == list(range(6))

    @pytest.mark.asyncio
    async def test_retrieve_ids_should_return_existing_subset(self, vector_index: QdrantVectorIndex) -> None:
        await vector_index.upsert_batch([_point(0)])

        assert await vector_index.retrieve_ids([POINT_IDS[0], POINT_IDS[1]]) == {POINT_IDS[0]}
        assert await vector_index.retrieve_ids([]) == set()

    @pytest.mark.asyncio
    async def test_search_should_raise_vector_store_error_for_missing_collection(self) -> None:
        client = AsyncQdrantClient(location=":memory:")
        index = QdrantVectorIndex(client, collection_name="missing", vector_size=DIMENSIONS, retry_attempts=1)

        with pytest.raises(VectorStoreError) as exc_info:
            await index.search(_one_hot(0), top_k=3)

        assert exc_info.value.details["operation"] == "search"
        await index.close()

    @pytest.mark.asyncio
    async def test_failed_call_should_log_error_with_collection(self, caplog: pytest.LogCaptureFixture) -> None:
        client = AsyncQdrantClient(location=":memory:")
        index = QdrantVectorIndex(client, collection_name="missing", vector_size=DIMENSIONS, retry_attempts=1)

        with caplog.at_level(logging.ERROR), pytest.raises(VectorStoreError):
            await index.count()

        record = caplog.records[-1]
        assert record.collection == "missing"
        assert record.error_type
        await index.close()
