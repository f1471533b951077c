"""
Ingestion, deletion and index maintenance result models.

Dependencies: pydantic
System role: Data structures returned by Ingestor and IndexReconciler
"""

from pydantic import BaseModel, Field


class SourceFile(BaseModel):
    """A document handed over for (re)indexing."""

    file_id: str
    filename: str
    text: str
    domain: str | None = None


class IngestionResult(BaseModel):
    """Outcome of indexing one document."""

    file_id: str
    chunks_created: int = 0
    total_tokens: int = 0
    embedding_tokens: int = 0
    vectors_stored: int = 0


class DeletionResult(BaseModel):
    """Outcome of removing a file's or module's chunks."""

    records_deleted: int = 0
    vectors_deleted: int = 0


class ReindexResult(BaseModel):
    """Outcome of re-indexing a module."""

    files_processed: int = 0
    total_chunks: int = 0
    total_tokens: int = 0


class IngestionStats(BaseModel):
    """Durable and vector-side counts for a module."""

    total_chunks: int = 0
    total_files: int = 0
    total_tokens: int = 0
    vector_count: int = 0


class ReconciliationReport(BaseModel):
    """Differences found between chunk records and stored vectors."""

    module_key: str
    records_checked: int = 0
    vectors_checked: int = 0
    dangling_vector_ids: list[str] = Field(
        default_factory=list,
        description="Record vector_ids with no stored vector",
    )
    orphan_vector_ids: list[str] = Field(
        default_factory=list,
        description="Stored vectors with no chunk record",
    )
    vectors_restored: int = 0
    orphans_removed: int = 0

    @property
    def consistent(self) -> bool:
        """True when records and vectors match one-to-one."""
        return not self.dangling_vector_ids and not self.orphan_vector_ids
