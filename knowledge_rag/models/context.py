"""
Context composition and conversation models.

Dependencies: pydantic
System role: Data structures handed to the external chat orchestrator
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class ContextTemplate(str, Enum):
    """Formatting template for composed context."""

    DEFAULT = "default"
    DETAILED = "detailed"
    MINIMAL = "minimal"


class CompositionOptions(BaseModel):
    """Options for ContextComposer.compose."""

    max_tokens: int = Field(default=8000, description="Token budget for the emitted context")
    include_source: bool = Field(default=True, description="Tag chunks with their filename")
    deduplication: bool = Field(default=True, description="Drop near-duplicate chunks")
    template: ContextTemplate = Field(default=ContextTemplate.DEFAULT)


class ComposedContext(BaseModel):
    """Context block plus a description of exactly what was emitted."""

    context_text: str = ""
    chunks_used: int = 0
    total_tokens: int = 0
    sources: list[str] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """One conversation turn."""

    role: Literal["user", "assistant"]
    content: str


class TokenSafetyReport(BaseModel):
    """Outcome of the pre-flight token budget check."""

    safe: bool
    total_estimate: int
    limit: int


class PreparedContext(BaseModel):
    """Everything the chat orchestrator needs for one model call."""

    system_prompt: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    composed: ComposedContext = Field(default_factory=ComposedContext)
    safety: TokenSafetyReport
    total_retrieved: int = 0
