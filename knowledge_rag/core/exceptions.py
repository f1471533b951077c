"""
Exception hierarchy for the knowledge RAG core.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the package
"""

from typing import Any


class KnowledgeRagError(Exception):
    """Base exception for all knowledge RAG errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(KnowledgeRagError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)


class EmbeddingError(KnowledgeRagError):
    """Raised when the embedding provider fails for a batch."""

    def __init__(
        self,
        message: str,
        batch_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize embedding error.

        Args:
            message: Error message
            batch_index: Index of the sub-batch that failed
            details: Additional context
        """
        details = dict(details or {})
        if batch_index is not None:
            details["batch_index"] = batch_index
        super().__init__(message, details)


class VectorStoreError(KnowledgeRagError):
    """Raised when vector store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (upsert, search, delete, count)
            details: Additional context
        """
        details = dict(details or {})
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class ChunkStoreError(KnowledgeRagError):
    """Raised when durable chunk record operations fail."""

    pass


class RerankError(KnowledgeRagError):
    """Raised when rerank scores cannot be obtained or validated."""

    pass
