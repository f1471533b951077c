"""
Base CRUD operations for SQLAlchemy models.

Provides generic bulk create, read, count and delete operations that
model-specific CRUD classes inherit and extend. Methods flush but never
commit; the caller owns the transaction.

Dependencies: sqlalchemy, uuid
System role: Foundation for all database CRUD operations
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_rag.boundary.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD(Generic[ModelT]):
    """
    Generic base class for CRUD operations.

    Type Parameters:
        ModelT: SQLAlchemy model class inheriting from Base

    Attributes:
        model: The SQLAlchemy model class to operate on
    """

    def __init__(self, model: type[ModelT]) -> None:
        """
        Initialize CRUD with target model.

        Args:
            model: SQLAlchemy model class for database operations
        """
        self.model = model

    async def create_many(self, session: AsyncSession, rows: Sequence[dict[str, Any]]) -> list[ModelT]:
        """
        Create several records in one flush.

        Args:
            session: Async database session
            rows: Field values, one dict per record

        Returns:
            Created model instances in input order
        """
        instances = [self.model(**row) for row in rows]
        session.add_all(instances)
        await session.flush()
        return instances

    async def get_by_id(self, session: AsyncSession, id: UUID) -> ModelT | None:
        """
        Retrieve a single record by primary key.

        Returns:
            Model instance if found, None otherwise
        """
        stmt = select(self.model).where(self.model.id == id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        """Count records matching all conditions."""
        stmt = select(func.count()).select_from(self.model).where(*conditions)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def delete_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        """
        Delete records matching all conditions.

        Returns:
            Number of rows deleted
        """
        stmt = delete(self.model).where(*conditions)
        result = await session.execute(stmt)
        return result.rowcount or 0
