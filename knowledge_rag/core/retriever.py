"""
Module-scoped semantic retrieval.

Expands the query with the module's intent hint, embeds it, searches the
vector index within the module and optionally reranks the candidates with
an LLM before truncating to top_k.

Dependencies: knowledge_rag.core.embedder, knowledge_rag.boundary.vdb
System role: Retrieval stage of the RAG pipeline
"""

import logging

from knowledge_rag.boundary.vdb.qdrant_index import QdrantVectorIndex
from knowledge_rag.boundary.vdb.vector_schemas import StoredVector, VectorFilter, VectorMatch
from knowledge_rag.core.embedder import Embedder
from knowledge_rag.core.module_hints import expand_query
from knowledge_rag.core.reranker import LLMReranker
from knowledge_rag.models.retrieval import RetrievalHit, RetrievalOptions, RetrievalResult
from knowledge_rag.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)

RERANK_CANDIDATE_FACTOR = 3
RERANK_CANDIDATE_CAP = 30
SEARCH_THRESHOLD_FACTOR = 0.8


def to_hit(match: VectorMatch) -> RetrievalHit:
    payload = match.payload
    return RetrievalHit(
        text=payload.text,
        score=match.score,
        filename=payload.filename,
        file_id=payload.file_id,
        chunk_index=payload.chunk_index,
        domain=payload.domain,
    )


class Retriever:
    """
    Semantic search over one module's chunks.

    Reranking needs an LLMReranker; without one, rerank requests fall back
    to plain similarity order.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_index: QdrantVectorIndex,
        reranker: LLMReranker | None = None,
    ) -> None:
        self._embedder = embedder
        self._index = vector_index
        self._reranker = reranker

    async def retrieve(
        self,
        module_key: str,
        query: str,
        options: RetrievalOptions | None = None,
    ) -> RetrievalResult:
        """
        Retrieve the most relevant chunks of a module for a query.

        Args:
            module_key: Knowledge module to search
            query: User query
            options: top_k, threshold, rerank and extra filter

        Returns:
            RetrievalResult with at most top_k hits; total_retrieved is the
            number of candidates before truncation

        Raises:
            EmbeddingError: If the query cannot be embedded
            VectorStoreError: If the search fails
        """
        opts = options or RetrievalOptions()
        rerank_top_k = opts.rerank_top_k or opts.top_k

        query_vector = await self._embedder.embed_query(expand_query(query, module_key))

        vector_filter = VectorFilter(
            module_key=module_key,
            file_id=opts.filter.file_id if opts.filter else None,
            domain=opts.filter.domain if opts.filter else None,
        )
        search_k = (
            min(opts.top_k * RERANK_CANDIDATE_FACTOR, RERANK_CANDIDATE_CAP) if opts.rerank else opts.top_k
        )
        candidates = await self._index.search(
            query_vector,
            top_k=search_k,
            filter=vector_filter,
            score_threshold=opts.score_threshold * SEARCH_THRESHOLD_FACTOR,
        )

        ordered = candidates
        if opts.rerank and len(candidates) > opts.top_k:
            if self._reranker is None:
                logger.warning(f"{__name__}:retrieve - Rerank requested but no reranker configured")
            else:
                ordered = await self._reranker.rerank(query, candidates, rerank_top_k)

        hits = [to_hit(match) for match in ordered[: opts.top_k]]
        log_with_context(
            logger,
            logging.INFO,
            f"{__name__}:retrieve - Retrieved {len(hits)} chunks",
            module_key=module_key,
            candidates=len(candidates),
            rerank=opts.rerank,
        )
        return RetrievalResult(hits=hits, total_retrieved=len(candidates), query=query)

    async def similarity_search(self, module_key: str, text: str, top_k: int = 5) -> list[RetrievalHit]:
        """Plain similarity search on raw text, without query expansion."""
        vector = await self._embedder.embed_query(text)
        matches = await self._index.search(vector, top_k=top_k, filter=VectorFilter(module_key=module_key))
        return [to_hit(match) for match in matches]

    async def get_file_chunks(self, module_key: str, file_id: str) -> list[StoredVector]:
        """All stored chunks of one file, ordered by chunk_index."""
        stored = await self._index.scroll(VectorFilter(module_key=module_key, file_id=file_id))
        return sorted(stored, key=lambda point: point.payload.chunk_index)

    async def count_module_chunks(self, module_key: str) -> int:
        return await self._index.count(VectorFilter(module_key=module_key))

    async def count_file_chunks(self, module_key: str, file_id: str) -> int:
        return await self._index.count(VectorFilter(module_key=module_key, file_id=file_id))
