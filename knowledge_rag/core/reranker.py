"""
LLM relevance reranking of retrieval candidates.

Scores the first window of candidates against the user query with a single
prompt that asks for a JSON array of scores, then re-sorts that window.
Reranking is best effort: any failure returns the candidates unchanged.

Dependencies: langchain_core, langchain_openai
System role: Optional precision stage of retrieval
"""

import json
import logging
import re
from typing import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from knowledge_rag.boundary.vdb.vector_schemas import VectorMatch
from knowledge_rag.configs.embedding import LLMSettings
from knowledge_rag.core.exceptions import RerankError

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[^\[\]]*\]", re.DOTALL)

MISSING_SCORE_FACTOR = 0.5


class LLMReranker:
    """
    Reranks vector matches with a chat model.

    Usage:
        reranker = LLMReranker(ChatOpenAI(model="gpt-4o-mini", temperature=0))
        ordered = await reranker.rerank(query, matches, top_k=5)
    """

    def __init__(
        self,
        chat_model: BaseChatModel,
        window: int = 12,
        text_limit: int = 900,
    ) -> None:
        """
        Initialize reranker.

        Args:
            chat_model: LangChain chat model used for scoring
            window: Max candidates scored per call
            text_limit: Characters of each candidate shown to the model
        """
        self.model = chat_model
        self.window = window
        self.text_limit = text_limit

    @classmethod
    def from_settings(
        cls,
        settings: LLMSettings,
        window: int = 12,
        text_limit: int = 900,
        api_key: str | None = None,
    ) -> "LLMReranker":
        chat_model = ChatOpenAI(
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.timeout_seconds,
            api_key=settings.api_key or api_key,
        )
        logger.info(f"{__name__}:from_settings - Initialized rerank model {settings.model}")
        return cls(chat_model, window=window, text_limit=text_limit)

    async def rerank(
        self,
        query: str,
        candidates: Sequence[VectorMatch],
        top_k: int,
    ) -> list[VectorMatch]:
        """
        Rerank candidates by LLM relevance score.

        The first `window` candidates are rescored and sorted; the sorted head
        is cut to top_k and the unscored remainder is appended in its original
        order. Missing (null) scores fall back to half the original score.

        Args:
            query: Original (unexpanded) user query
            candidates: Matches in similarity order
            top_k: Size of the reranked head

        Returns:
            Reranked matches, or the input order on any failure
        """
        head = list(candidates[: self.window])
        remainder = list(candidates[self.window :])
        if not head:
            return list(candidates)

        try:
            prompt = self._build_prompt(query, head)
            response = await self.model.ainvoke([HumanMessage(content=prompt)])
            scores = self._parse_scores(self._response_text(response.content), len(head))
        except Exception as e:
            logger.warning(
                f"{__name__}:rerank - Reranking failed, using original order: {type(e).__name__}: {e}"
            )
            return list(candidates)

        rescored = [
            candidate.model_copy(
                update={"score": score if score is not None else candidate.score * MISSING_SCORE_FACTOR}
            )
            for candidate, score in zip(head, scores + [None] * (len(head) - len(scores)))
        ]
        rescored.sort(key=lambda match: match.score, reverse=True)

        logger.debug(f"{__name__}:rerank - Reranked {len(head)} of {len(candidates)} candidates")
        return rescored[:top_k] + remainder

    def _build_prompt(self, query: str, candidates: Sequence[VectorMatch]) -> str:
        """Build the scoring prompt listing each candidate by index."""
        blocks = []
        for index, candidate in enumerate(candidates):
            text = candidate.payload.text
            if len(text) > self.text_limit:
                text = text[: self.text_limit] + "..."
            blocks.append(f"[{index}] {text}")
        chunk_list = "\n\n".join(blocks)

        return f"""You are a relevance scoring expert. Given a user query and a list of text chunks, score each chunk's relevance to answering the query.

Query: "{query}"

Chunks:
{chunk_list}

Return ONLY a JSON array of scores (0.0 to 1.0) for each chunk in order, like: [0.95, 0.82, 0.65, ...]
Higher scores mean more relevant. Consider:
- Direct answer potential
- Topic alignment
- Specificity
- Usefulness for the query

JSON array:"""

    @staticmethod
    def _response_text(content: str | list) -> str:
        if isinstance(content, str):
            return content
        # Content blocks from providers returning structured messages
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block) for block in content
        )

    @staticmethod
    def _parse_scores(text: str, expected: int) -> list[float | None]:
        """
        Extract and validate the score array.

        Raises:
            RerankError: When no array is found, it is longer than expected,
                or an entry is not a number in [0, 1] or null
        """
        match = _JSON_ARRAY.search(text)
        if match is None:
            raise RerankError("No JSON array in rerank response", details={"response": text[:200]})

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise RerankError(f"Invalid JSON in rerank response: {e}") from e

        if len(data) > expected:
            raise RerankError(
                "Rerank response has more scores than candidates",
                details={"expected": expected, "received": len(data)},
            )

        scores: list[float | None] = []
        for value in data:
            if value is None:
                scores.append(None)
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise RerankError("Rerank score out of range", details={"value": value})
            scores.append(float(value))
        return scores
