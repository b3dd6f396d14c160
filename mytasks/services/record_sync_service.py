"""
Attachment record sync service.
Binds the storage-side attachment services to the task row. Storage always
commits first and the row is written last, so a committed row never points at
an object that was not stored. There is no rollback of storage steps: a
failure after a storage commit leaves at most an orphaned object.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from mytasks.core.exceptions import BadRequestException, ObjectNotFoundError
from mytasks.core.security import UserSession
from mytasks.crud.task import attachment_values, crud_task
from mytasks.models.task import Task
from mytasks.schemas.attachment import Attachment, Visibility
from mytasks.services.attachment_service import (
    AttachmentReplacer,
    AttachmentUploader,
    PdfFile,
    SignedLinkResolver,
    VisibilityMigrator,
)
from mytasks.services.storage_service import ObjectStore

logger = logging.getLogger(__name__)


def _clean_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise BadRequestException("Task title must not be blank")
    return title


class AttachmentRecordSync:

    def __init__(self, storage: ObjectStore) -> None:
        self.storage = storage
        self.uploader = AttachmentUploader(storage)
        self.resolver = SignedLinkResolver(storage)
        self.migrator = VisibilityMigrator(storage)
        self.replacer = AttachmentReplacer(storage, self.uploader)

    async def list_tasks(self, db: AsyncSession, *, session: UserSession) -> list[Task]:
        return await crud_task.list_owned(db, user_id=session.user_id)

    async def list_public_tasks(self, db: AsyncSession) -> list[Task]:
        return await crud_task.list_public(db)

    async def get_task(
        self, db: AsyncSession, *, session: UserSession, task_id: uuid.UUID
    ) -> Task | None:
        return await crud_task.get_owned(db, id=task_id, user_id=session.user_id)

    async def add_task(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        title: str,
        file: PdfFile | None = None,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> Task:
        """
        Create a task, optionally with its PDF.
        The id is assigned here so the object can be stored before the row
        exists; the insert then carries the full descriptor.
        """
        title = _clean_title(title)
        task_id = uuid.uuid4()
        attachment = None
        if file is not None:
            attachment = await self.uploader.upload(file, task_id, visibility)

        task = await crud_task.create_task(
            db,
            task_id=task_id,
            title=title,
            user_id=session.user_id,
            attachment=attachment,
        )
        logger.info(
            "Task created: task_id=%s user_id=%s pdf=%s",
            task.id,
            session.user_id,
            attachment.path if attachment else None,
        )
        return task

    async def update_task(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
        title: str | None = None,
        file: PdfFile | None = None,
        visibility: Visibility | None = None,
    ) -> Task | None:
        """
        Save an edit of a task.

        With a new file the attachment is replaced (or first uploaded) in the
        requested visibility. Without one, a changed visibility migrates the
        existing object. Returns None when the caller owns no such task.
        """
        if title is not None:
            title = _clean_title(title)
        task = await crud_task.get_owned(db, id=task_id, user_id=session.user_id)
        if task is None:
            return None

        current = task.attachment
        if visibility is None:
            visibility = current.visibility if current else Visibility.PRIVATE

        if file is not None:
            if current is None:
                attachment = await self.uploader.upload(file, task.id, visibility)
            else:
                attachment = await self.replacer.replace(current, file, visibility, task.id)
        else:
            attachment = await self._transition_visibility(task, current, visibility)

        values = attachment_values(attachment)
        if title is not None:
            values["title"] = title
        return await self._write(db, session=session, task_id=task.id, values=values)

    async def change_visibility(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
        visibility: Visibility,
    ) -> Task | None:
        task = await crud_task.get_owned(db, id=task_id, user_id=session.user_id)
        if task is None:
            return None

        current = task.attachment
        attachment = await self._transition_visibility(task, current, visibility)
        if attachment == current:
            return task
        return await self._write(
            db, session=session, task_id=task.id, values=attachment_values(attachment)
        )

    async def set_completed(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
        completed: bool,
    ) -> Task | None:
        return await self._write(
            db, session=session, task_id=task_id, values={"completed": completed}
        )

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
    ) -> int:
        """
        Remove the task's object, then its row. Returns rows deleted.
        An object that is already gone counts as removed. A task the caller
        does not own is left alone and 0 is returned.
        """
        task = await crud_task.get_owned(db, id=task_id, user_id=session.user_id)
        if task is None:
            return 0

        current = task.attachment
        if current is not None:
            try:
                await self.storage.remove(current.bucket, current.path)
            except ObjectNotFoundError:
                logger.info(
                    "Attachment already absent: bucket=%s path=%s", current.bucket, current.path
                )

        deleted = await crud_task.remove_owned(db, id=task_id, user_id=session.user_id)
        logger.info("Task deleted: task_id=%s user_id=%s rows=%d", task_id, session.user_id, deleted)
        return deleted

    async def get_pdf_link(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
    ) -> str | None:
        """Stored URL of a public PDF, or a fresh signed URL for a private one."""
        task = await crud_task.get_owned(db, id=task_id, user_id=session.user_id)
        if task is None or task.attachment is None:
            return None
        attachment = task.attachment
        if attachment.is_public:
            return attachment.url
        return await self.resolver.resolve(attachment.path, attachment.bucket)

    async def _transition_visibility(
        self, task: Task, current: Attachment | None, visibility: Visibility
    ) -> Attachment | None:
        if current is None or current.visibility is visibility:
            return current
        return await self.migrator.migrate(current.path, current.bucket, visibility, task.id)

    async def _write(
        self,
        db: AsyncSession,
        *,
        session: UserSession,
        task_id: uuid.UUID,
        values: dict,
    ) -> Task | None:
        updated = await crud_task.update_owned(
            db, id=task_id, user_id=session.user_id, values=values
        )
        if updated == 0:
            return None
        return await crud_task.get_owned(db, id=task_id, user_id=session.user_id)
