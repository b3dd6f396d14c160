"""
Generic async CRUD base class for owner-scoped rows.
Every statement filters on the owner column; a row owned by someone else is
indistinguishable from a missing row. Driver errors surface as DatabaseError.
"""
from __future__ import annotations

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mytasks.core.exceptions import DatabaseError
from mytasks.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Owner-scoped CRUD operations for SQLAlchemy async ORM models.

    The model must expose `id`, `user_id` and `created_at` columns.
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model = model

    def _owned(self, id: uuid.UUID, user_id: uuid.UUID) -> list[Any]:
        return [self.model.id == id, self.model.user_id == user_id]  # type: ignore[attr-defined]

    async def get_owned(
        self, db: AsyncSession, *, id: uuid.UUID, user_id: uuid.UUID
    ) -> ModelType | None:
        """Fetch a single record by primary key and owner."""
        try:
            result = await db.execute(
                select(self.model)
                .where(*self._owned(id, user_id))
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to load {self.model.__name__}: {exc}") from exc
        return result.scalar_one_or_none()

    async def list_owned(self, db: AsyncSession, *, user_id: uuid.UUID) -> list[ModelType]:
        """Fetch all records of one owner, newest first."""
        try:
            result = await db.execute(
                select(self.model)
                .where(self.model.user_id == user_id)  # type: ignore[attr-defined]
                .order_by(self.model.created_at.desc())  # type: ignore[attr-defined]
            )
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to list {self.model.__name__}: {exc}") from exc
        return list(result.scalars().all())

    async def create_from_dict(
        self, db: AsyncSession, *, obj_in: dict[str, Any]
    ) -> ModelType:
        """Insert a new record from a plain dictionary."""
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        try:
            await db.flush()
            await db.refresh(db_obj)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to create {self.model.__name__}: {exc}") from exc
        return db_obj

    async def update_owned(
        self,
        db: AsyncSession,
        *,
        id: uuid.UUID,
        user_id: uuid.UUID,
        values: dict[str, Any],
    ) -> int:
        """Apply values in one UPDATE filtered by id and owner. Returns rows affected."""
        try:
            result = await db.execute(
                update(self.model).where(*self._owned(id, user_id)).values(**values)
            )
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to update {self.model.__name__}: {exc}") from exc
        return result.rowcount

    async def remove_owned(
        self, db: AsyncSession, *, id: uuid.UUID, user_id: uuid.UUID
    ) -> int:
        """DELETE filtered by id and owner. Returns rows affected."""
        try:
            result = await db.execute(delete(self.model).where(*self._owned(id, user_id)))
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to delete {self.model.__name__}: {exc}") from exc
        return result.rowcount
