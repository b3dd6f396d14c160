"""
Task CRUD operations.
Extends CRUDBase with the attachment column mapping and the public projection.
"""
from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mytasks.core.exceptions import DatabaseError
from mytasks.crud.base import CRUDBase
from mytasks.models.task import Task
from mytasks.schemas.attachment import Attachment


def attachment_values(attachment: Attachment | None) -> dict[str, Any]:
    """All four attachment columns, always written together."""
    if attachment is None:
        return {"pdf_path": None, "pdf_url": None, "pdf_bucket": None, "is_public_pdf": False}
    return {
        "pdf_path": attachment.path,
        "pdf_url": attachment.url,
        "pdf_bucket": attachment.bucket,
        "is_public_pdf": attachment.is_public,
    }


class CRUDTask(CRUDBase[Task]):

    async def create_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        title: str,
        user_id: uuid.UUID,
        attachment: Attachment | None = None,
    ) -> Task:
        return await self.create_from_dict(
            db,
            obj_in={
                "id": task_id,
                "title": title,
                "user_id": user_id,
                **attachment_values(attachment),
            },
        )

    async def list_public(self, db: AsyncSession) -> list[Task]:
        """Tasks whose PDF is world-readable, newest first."""
        try:
            result = await db.execute(
                select(Task)
                .where(Task.is_public_pdf.is_(True), Task.pdf_url.is_not(None))
                .order_by(Task.created_at.desc())
            )
        except SQLAlchemyError as exc:
            raise DatabaseError(f"Failed to list public tasks: {exc}") from exc
        return list(result.scalars().all())


crud_task = CRUDTask(Task)
