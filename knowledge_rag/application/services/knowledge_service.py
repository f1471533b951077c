"""
Knowledge service facade.

Single entry point for the chat orchestrator: document indexing, retrieval,
composition, index maintenance, and preparing the exact message list for a
knowledge-grounded model call.

Dependencies: knowledge_rag.core, knowledge_rag.configs
System role: Knowledge management orchestration
"""

import logging
from typing import Sequence

from knowledge_rag.application.services.prompts import build_system_prompt
from knowledge_rag.configs.rag import RagSettings
from knowledge_rag.core.context_composer import ContextComposer
from knowledge_rag.core.ingestor import Ingestor
from knowledge_rag.core.reconciler import IndexReconciler
from knowledge_rag.core.retriever import Retriever
from knowledge_rag.core.tokens import estimate_tokens
from knowledge_rag.models.context import (
    ChatMessage,
    ComposedContext,
    CompositionOptions,
    PreparedContext,
)
from knowledge_rag.models.ingestion import (
    DeletionResult,
    IngestionResult,
    IngestionStats,
    ReconciliationReport,
    ReindexResult,
    SourceFile,
)
from knowledge_rag.models.retrieval import RetrievalOptions, RetrievalResult

logger = logging.getLogger(__name__)


class KnowledgeService:
    """
    Facade over ingestion, retrieval and composition.

    Usage:
        service = get_knowledge_service()
        await service.ingest_document("linkedin-post", "f-1", "guide.md", text)
        prepared = await service.prepare_context("linkedin-post", "How do I open a post?")
    """

    def __init__(
        self,
        ingestor: Ingestor,
        retriever: Retriever,
        composer: ContextComposer,
        reconciler: IndexReconciler,
        rag_settings: RagSettings | None = None,
    ) -> None:
        """
        Initialize knowledge service.

        Args:
            ingestor: Document write path
            retriever: Module-scoped retrieval
            composer: Context composition and budgeting
            reconciler: Record/vector consistency checks
            rag_settings: Pipeline defaults (top_k, budgets, history size)
        """
        self.ingestor = ingestor
        self.retriever = retriever
        self.composer = composer
        self.reconciler = reconciler
        self.rag = rag_settings or RagSettings()

    async def ingest_document(
        self,
        module_key: str,
        file_id: str,
        filename: str,
        text: str,
        domain: str | None = None,
    ) -> IngestionResult:
        return await self.ingestor.ingest_document(module_key, file_id, filename, text, domain=domain)

    async def delete_file_chunks(self, module_key: str, file_id: str) -> DeletionResult:
        return await self.ingestor.delete_file_chunks(module_key, file_id)

    async def delete_module_chunks(self, module_key: str) -> DeletionResult:
        return await self.ingestor.delete_module_chunks(module_key)

    async def reindex_module(self, module_key: str, files: list[SourceFile]) -> ReindexResult:
        return await self.ingestor.reindex_module(module_key, files)

    async def get_ingestion_stats(self, module_key: str) -> IngestionStats:
        return await self.ingestor.get_ingestion_stats(module_key)

    async def reconcile_module(self, module_key: str, repair: bool = False) -> ReconciliationReport:
        return await self.reconciler.reconcile_module(module_key, repair=repair)

    async def retrieve(
        self,
        module_key: str,
        query: str,
        options: RetrievalOptions | None = None,
    ) -> RetrievalResult:
        """Retrieve with the configured top_k when no options are given."""
        return await self.retriever.retrieve(module_key, query, options or RetrievalOptions(top_k=self.rag.top_k))

    def compose(
        self,
        result: RetrievalResult,
        options: CompositionOptions | None = None,
    ) -> ComposedContext:
        return self.composer.compose(result, options or self._default_composition())

    def _default_composition(self) -> CompositionOptions:
        return CompositionOptions(max_tokens=self.rag.context_max_tokens)

    async def prepare_context(
        self,
        module_key: str,
        query: str,
        system_prompt: str = "",
        history: Sequence[ChatMessage] | None = None,
        retrieval_options: RetrievalOptions | None = None,
        composition_options: CompositionOptions | None = None,
        expected_reply_tokens: int | None = None,
    ) -> PreparedContext:
        """
        Build the message list for one knowledge-grounded model call.

        Retrieves and composes context, trims history to the configured
        number of turns and checks the token budget. While the call would
        not fit, the context budget is halved and the context recomposed;
        once the budget drops below the formatting overhead nothing is
        selected and the call goes out without context.

        Args:
            module_key: Knowledge module to search
            query: User query (sent as the final user message)
            system_prompt: Module system prompt; grounding rules are appended
            history: Prior conversation turns
            retrieval_options: Overrides for retrieval
            composition_options: Overrides for composition
            expected_reply_tokens: Tokens reserved for the reply

        Returns:
            PreparedContext with system prompt, messages, context and safety report

        Raises:
            EmbeddingError, VectorStoreError: If retrieval fails
        """
        reply_tokens = expected_reply_tokens if expected_reply_tokens is not None else self.rag.expected_reply_tokens
        full_system_prompt = build_system_prompt(system_prompt)

        retrieval = await self.retrieve(module_key, query, retrieval_options)
        options = composition_options or self._default_composition()
        composed = self.composer.compose(retrieval, options)

        trimmed = self.composer.trim_messages_to_limit(list(history or []), self.rag.history_max_pairs)
        conversation_tokens = self.composer.estimate_conversation_tokens("", trimmed) + estimate_tokens(query)

        safety = self.composer.ensure_token_safety(
            full_system_prompt, composed.total_tokens, conversation_tokens, reply_tokens
        )
        budget = options.max_tokens
        while not safety.safe and composed.chunks_used > 0:
            budget //= 2
            logger.warning(
                f"{__name__}:prepare_context - Token limit exceeded "
                f"({safety.total_estimate}/{safety.limit}), reducing context to {budget} tokens"
            )
            composed = self.composer.compose(retrieval, options.model_copy(update={"max_tokens": budget}))
            safety = self.composer.ensure_token_safety(
                full_system_prompt, composed.total_tokens, conversation_tokens, reply_tokens
            )

        messages = list(trimmed)
        if composed.chunks_used > 0:
            messages.append(
                ChatMessage(
                    role="assistant",
                    content=self.composer.build_assistant_context_message(composed.context_text),
                )
            )
        messages.append(ChatMessage(role="user", content=query))

        return PreparedContext(
            system_prompt=full_system_prompt,
            messages=messages,
            composed=composed,
            safety=safety,
            total_retrieved=retrieval.total_retrieved,
        )
