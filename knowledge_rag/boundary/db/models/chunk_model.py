"""
Chunk record ORM model.

Durable record of one indexed chunk. The record, not the vector, is the
source of truth: the reconciler restores missing vectors from it.

Dependencies: sqlalchemy, knowledge_rag.boundary.db.base
System role: Chunk metadata persistence
"""

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_rag.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ChunkRecordModel(Base, UUIDMixin, TimestampMixin):
    """
    Indexed chunk with its vector reference.

    Attributes:
        module_key: Knowledge module the chunk belongs to
        file_id: Identifier of the source document
        filename: Display name of the source document
        text: Chunk text as embedded
        chunk_index: Position of the chunk in its document
        token_count: Estimated tokens of text
        start_offset: Character offset of the chunk in the source
        end_offset: Character offset past the chunk in the source
        vector_id: Id of the matching point in the vector index
        domain: Optional knowledge domain tag
    """

    __tablename__ = "knowledge_chunks"
    __table_args__ = (
        UniqueConstraint("module_key", "file_id", "chunk_index", name="uq_chunk_position"),
        Index("ix_knowledge_chunks_module_file", "module_key", "file_id"),
    )

    module_key: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    file_id: Mapped[str] = mapped_column(String(255), nullable=False)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    token_count: Mapped[int] = mapped_column(Integer, nullable=False)
    start_offset: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    end_offset: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vector_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    domain: Mapped[str | None] = mapped_column(String(128), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ChunkRecordModel(module_key={self.module_key}, file_id={self.file_id}, "
            f"chunk_index={self.chunk_index})>"
        )
