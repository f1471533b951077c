"""
Paragraph-first text chunker with sentence fallback.

Splits raw document text into overlapping, token-bounded chunks. Paragraphs
are accumulated until the next one would overflow the token budget; the next
chunk is then seeded with a word tail of the previous one. Paragraphs larger
than the budget are split on sentence boundaries with the same logic.

Dependencies: re, knowledge_rag.models.chunk
System role: First stage of document ingestion
"""

import logging
import math
import re
from dataclasses import dataclass

from knowledge_rag.core.exceptions import ValidationError
from knowledge_rag.core.tokens import estimate_tokens
from knowledge_rag.models.chunk import Chunk, ChunkOptions

logger = logging.getLogger(__name__)

# Blank lines, or a newline that starts a heading, numbered item or "Label: " line
_PARAGRAPH_BOUNDARY = re.compile(
    r"\n[ \t]*\n\s*|\n(?=#{1,6}\s)|\n(?=\d+\.\s)|\n(?=[A-Z][a-zA-Z]+:\s)"
)
_SENTENCE = re.compile(r"[^.!?]+[.!?]+|[^.!?]+$")

PARAGRAPH_JOINER = "\n\n"
SENTENCE_JOINER = " "
OVERLAP_WORD_RATIO = 0.75


@dataclass(frozen=True)
class _Span:
    """Stripped piece of the source text with its character offsets."""

    text: str
    start: int
    end: int


def _stripped_span(source: str, start: int, end: int) -> _Span | None:
    raw = source[start:end]
    stripped = raw.strip()
    if not stripped:
        return None
    lead = len(raw) - len(raw.lstrip())
    return _Span(stripped, start + lead, start + lead + len(stripped))


class Chunker:
    """Split text into token-bounded, overlapping chunks."""

    def __init__(self, default_options: ChunkOptions | None = None) -> None:
        """
        Initialize chunker.

        Args:
            default_options: Bounds used when chunk() is called without options
        """
        self._default_options = default_options or ChunkOptions()

    def chunk(self, text: str, options: ChunkOptions | None = None) -> list[Chunk]:
        """
        Chunk document text.

        Args:
            text: Raw document text
            options: Token bounds (defaults: max 400, min 50, overlap 80)

        Returns:
            list[Chunk]: Chunks in source order. Chunks whose estimate falls
            below min_tokens are dropped, so short inputs yield an empty list.

        Raises:
            ValidationError: When the option bounds are inconsistent
        """
        opts = options or self._default_options
        self._validate(opts)

        paragraphs = self.split_paragraphs(text)
        chunks: list[Chunk] = []
        pending: list[_Span] = []

        for paragraph in paragraphs:
            if estimate_tokens(paragraph.text) > opts.max_tokens:
                chunks.extend(self._accumulate(pending, PARAGRAPH_JOINER, opts))
                pending = []
                sentences = self.split_sentences(paragraph)
                chunks.extend(self._accumulate(sentences, SENTENCE_JOINER, opts))
                continue
            pending.append(paragraph)

        chunks.extend(self._accumulate(pending, PARAGRAPH_JOINER, opts))

        kept = [c for c in chunks if c.token_count >= opts.min_tokens]
        if len(kept) < len(chunks):
            logger.debug(
                f"{__name__}:chunk - Dropped {len(chunks) - len(kept)} chunks under "
                f"{opts.min_tokens} tokens"
            )
        return kept

    def split_paragraphs(self, text: str) -> list[_Span]:
        """Split text on blank-line, heading, list-item and label boundaries."""
        spans: list[_Span] = []
        position = 0
        for match in _PARAGRAPH_BOUNDARY.finditer(text):
            span = _stripped_span(text, position, match.start())
            if span is not None:
                spans.append(span)
            position = match.end()
        span = _stripped_span(text, position, len(text))
        if span is not None:
            spans.append(span)
        return spans

    def split_sentences(self, paragraph: _Span) -> list[_Span]:
        """Split a paragraph on . ! ? boundaries, keeping source offsets."""
        spans: list[_Span] = []
        for match in _SENTENCE.finditer(paragraph.text):
            span = _stripped_span(paragraph.text, match.start(), match.end())
            if span is not None:
                spans.append(_Span(span.text, paragraph.start + span.start, paragraph.start + span.end))
        return spans or [paragraph]

    def _accumulate(self, units: list[_Span], joiner: str, opts: ChunkOptions) -> list[Chunk]:
        """Greedily pack units into chunks, seeding each new chunk with an overlap tail."""
        chunks: list[Chunk] = []
        buffer = ""
        start = end = 0

        for unit in units:
            if not buffer:
                buffer, start, end = unit.text, unit.start, unit.end
                continue

            candidate = buffer + joiner + unit.text
            if estimate_tokens(candidate) <= opts.max_tokens:
                buffer, end = candidate, unit.end
                continue

            chunks.append(self._make_chunk(buffer, start, end))
            tail = self._overlap_tail(buffer, unit.text, joiner, opts)
            buffer = tail + joiner + unit.text if tail else unit.text
            start, end = unit.start, unit.end

        if buffer:
            chunks.append(self._make_chunk(buffer, start, end))
        return chunks

    def _overlap_tail(self, closed: str, next_text: str, joiner: str, opts: ChunkOptions) -> str:
        """
        Last ~0.75 * overlap_tokens words of the closed chunk.

        Words are dropped from the front of the tail until tail + next unit
        fits max_tokens, so overlap never pushes a chunk over budget.
        """
        word_count = math.floor(opts.overlap_tokens * OVERLAP_WORD_RATIO)
        if word_count <= 0:
            return ""
        words = closed.split()[-word_count:]
        while words and estimate_tokens(" ".join(words) + joiner + next_text) > opts.max_tokens:
            words = words[1:]
        return " ".join(words)

    @staticmethod
    def _make_chunk(text: str, start: int, end: int) -> Chunk:
        return Chunk(
            text=text,
            token_count=estimate_tokens(text),
            start_offset=start,
            end_offset=end,
        )

    @staticmethod
    def _validate(opts: ChunkOptions) -> None:
        if opts.max_tokens <= 0:
            raise ValidationError("max_tokens must be positive", field="max_tokens")
        if opts.min_tokens < 0:
            raise ValidationError("min_tokens cannot be negative", field="min_tokens")
        if opts.overlap_tokens < 0:
            raise ValidationError("overlap_tokens cannot be negative", field="overlap_tokens")
        if opts.min_tokens > opts.max_tokens:
            raise ValidationError(
                "min_tokens cannot exceed max_tokens",
                field="min_tokens",
                details={"min_tokens": opts.min_tokens, "max_tokens": opts.max_tokens},
            )
