"""
Context composition and conversation budgeting.

Turns retrieval hits into a single grounded context block that fits a token
budget, trims chat history to recent turns and checks that a whole model
call stays under the model's context window. Everything here is pure and
never raises.

Dependencies: hashlib, knowledge_rag.models
System role: Final stage between retrieval and the chat orchestrator
"""

import hashlib
import logging
from typing import Sequence

from knowledge_rag.core.tokens import estimate_tokens
from knowledge_rag.models.context import (
    ChatMessage,
    ComposedContext,
    CompositionOptions,
    ContextTemplate,
    TokenSafetyReport,
)
from knowledge_rag.models.retrieval import RetrievalHit, RetrievalResult

logger = logging.getLogger(__name__)

GROUNDING_INSTRUCTION = (
    "You MUST ground every factual claim in the following reference material unless "
    "explicitly stated otherwise. If a claim is not covered here, clearly state that "
    "you're using general knowledge."
)
REFERENCE_CONTEXT_HEADER = "REFERENCE CONTEXT\n\n"
FINGERPRINT_EDGE_CHARS = 120

_SEPARATORS = {
    ContextTemplate.DEFAULT: "\n\n---\n\n",
    ContextTemplate.DETAILED: "\n\n",
    ContextTemplate.MINIMAL: "\n\n",
}


def fingerprint(text: str) -> str:
    """md5 of the first and last 120 characters of a chunk."""
    edges = text[:FINGERPRINT_EDGE_CHARS] + text[-FINGERPRINT_EDGE_CHARS:]
    return hashlib.md5(edges.encode("utf-8")).hexdigest()


class ContextComposer:
    """
    Formats retrieval hits into a prompt-ready context block.

    The emitted context never exceeds the requested max_tokens: a fixed
    overhead is reserved for the grounding instruction and each hit is
    charged the estimate of its fully formatted block.
    """

    def __init__(
        self,
        formatting_overhead_tokens: int = 400,
        model_token_limit: int = 190_000,
    ) -> None:
        """
        Initialize composer.

        Args:
            formatting_overhead_tokens: Budget reserved for the grounding line
            model_token_limit: Context window used by ensure_token_safety
        """
        self.formatting_overhead_tokens = formatting_overhead_tokens
        self.model_token_limit = model_token_limit

    def compose(
        self,
        hits: RetrievalResult | Sequence[RetrievalHit],
        options: CompositionOptions | None = None,
    ) -> ComposedContext:
        """
        Compose a context block from hits.

        Hits are deduplicated (first seen wins), then taken greedily by
        descending score until the next one no longer fits; selection stops
        there. An empty selection yields an empty context.

        Args:
            hits: Retrieval result or bare hits
            options: Budget, template, source tagging and dedup switches

        Returns:
            ComposedContext describing exactly what was emitted
        """
        opts = options or CompositionOptions()
        candidates = list(hits.hits if isinstance(hits, RetrievalResult) else hits)

        if opts.deduplication:
            candidates = self._deduplicate(candidates)

        selected, blocks = self._fit_to_budget(candidates, opts)
        if not selected:
            return ComposedContext()

        body = _SEPARATORS[opts.template].join(blocks)
        if opts.template is ContextTemplate.MINIMAL:
            context_text = body
        else:
            context_text = f"{GROUNDING_INSTRUCTION}\n\n{body}"

        sources = list(dict.fromkeys(hit.filename for hit in selected))
        return ComposedContext(
            context_text=context_text,
            chunks_used=len(selected),
            total_tokens=estimate_tokens(context_text),
            sources=sources,
        )

    @staticmethod
    def _deduplicate(hits: list[RetrievalHit]) -> list[RetrievalHit]:
        seen: set[str] = set()
        unique: list[RetrievalHit] = []
        for hit in hits:
            key = fingerprint(hit.text)
            if key not in seen:
                seen.add(key)
                unique.append(hit)
        return unique

    def _fit_to_budget(
        self,
        hits: list[RetrievalHit],
        opts: CompositionOptions,
    ) -> tuple[list[RetrievalHit], list[str]]:
        available = opts.max_tokens - self.formatting_overhead_tokens
        separator_tokens = estimate_tokens(_SEPARATORS[opts.template])

        selected: list[RetrievalHit] = []
        blocks: list[str] = []
        used = 0
        for hit in sorted(hits, key=lambda h: h.score, reverse=True):
            block = self._format_block(hit, len(selected) + 1, opts)
            cost = estimate_tokens(block) + separator_tokens
            if used + cost > available:
                break
            selected.append(hit)
            blocks.append(block)
            used += cost
        return selected, blocks

    @staticmethod
    def _format_block(hit: RetrievalHit, position: int, opts: CompositionOptions) -> str:
        if opts.template is ContextTemplate.DETAILED:
            header = f"### Reference {position}"
            if opts.include_source:
                header += f" [{hit.filename}]"
            return f"{header}\n{hit.text}"
        if opts.template is ContextTemplate.MINIMAL:
            return hit.text
        if opts.include_source:
            return f"[Source: {hit.filename}]\n{hit.text}"
        return hit.text

    @staticmethod
    def build_assistant_context_message(context: str) -> str:
        """Wrap composed context as the assistant-side reference message."""
        return f"{REFERENCE_CONTEXT_HEADER}{context}"

    @staticmethod
    def estimate_conversation_tokens(system: str, messages: Sequence[ChatMessage]) -> int:
        """Estimated tokens of a system prompt plus every message."""
        return estimate_tokens(system) + sum(estimate_tokens(m.content) for m in messages)

    @staticmethod
    def trim_messages_to_limit(messages: Sequence[ChatMessage], max_pairs: int = 8) -> list[ChatMessage]:
        """
        Keep the last max_pairs conversation turns.

        A user message followed by an assistant message forms one turn; any
        other message is a turn on its own. The result therefore always ends
        with the last input message and holds at most 2 * max_pairs messages.
        """
        if max_pairs < 1 or not messages:
            return []

        groups: list[list[ChatMessage]] = []
        index = 0
        while index < len(messages):
            current = messages[index]
            following = messages[index + 1] if index + 1 < len(messages) else None
            if current.role == "user" and following is not None and following.role == "assistant":
                groups.append([current, following])
                index += 2
            else:
                groups.append([current])
                index += 1

        return [message for group in groups[-max_pairs:] for message in group]

    def ensure_token_safety(
        self,
        system_prompt_text: str,
        context_tokens: int,
        conversation_tokens: int,
        expected_reply_tokens: int = 4000,
    ) -> TokenSafetyReport:
        """
        Check that a model call fits the context window.

        Returns:
            TokenSafetyReport; safe iff the total estimate is below the limit
        """
        total = (
            estimate_tokens(system_prompt_text)
            + context_tokens
            + conversation_tokens
            + expected_reply_tokens
        )
        report = TokenSafetyReport(
            safe=total < self.model_token_limit,
            total_estimate=total,
            limit=self.model_token_limit,
        )
        if not report.safe:
            logger.warning(
                f"{__name__}:ensure_token_safety - Estimate {total} exceeds limit {self.model_token_limit}"
            )
        return report
