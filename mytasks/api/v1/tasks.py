"""
Task routes.
CRUD for the caller's tasks plus the PDF attachment lifecycle
(upload, replace, visibility change, link issuance, delete).
Create and edit accept multipart/form-data so a PDF can ride along.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile, status

from mytasks.core.config import settings
from mytasks.core.dependencies import CurrentSession, DBSession, RecordSync
from mytasks.core.exceptions import NotFoundException
from mytasks.models.task import Task
from mytasks.schemas.attachment import AttachmentLink, Visibility, VisibilityUpdate
from mytasks.schemas.task import TaskCompletedUpdate, TaskRead
from mytasks.services.attachment_service import PdfFile, check_size

router = APIRouter(prefix="/tasks", tags=["Tasks"])


async def _read_pdf(upload: UploadFile | None) -> PdfFile | None:
    # Browsers submit an empty part when no file was chosen
    if upload is None or not upload.filename:
        return None
    # Declared multipart size lets an oversize body be refused unread
    if upload.size is not None:
        check_size(upload.size)
    content = await upload.read()
    return PdfFile(filename=upload.filename, content=content)


def _found(task: Task | None, task_id: uuid.UUID) -> Task:
    if task is None:
        raise NotFoundException("Task", str(task_id))
    return task


@router.get(
    "/",
    response_model=list[TaskRead],
    summary="List the caller's tasks, newest first",
)
async def list_tasks(
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
) -> list[TaskRead]:
    tasks = await sync.list_tasks(db, session=session)
    return [TaskRead.model_validate(t) for t in tasks]


@router.post(
    "/",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task with an optional PDF",
)
async def create_task(
    title: Annotated[str, Form(min_length=1, max_length=500)],
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
    is_public: Annotated[bool, Form()] = False,
    file: Annotated[UploadFile | None, File()] = None,
) -> TaskRead:
    task = await sync.add_task(
        db,
        session=session,
        title=title,
        file=await _read_pdf(file),
        visibility=Visibility.from_flag(is_public),
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}",
    response_model=TaskRead,
    summary="Edit a task: title, PDF replacement and/or visibility",
)
async def update_task(
    task_id: uuid.UUID,
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
    title: Annotated[str | None, Form(min_length=1, max_length=500)] = None,
    is_public: Annotated[bool | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> TaskRead:
    task = await sync.update_task(
        db,
        session=session,
        task_id=task_id,
        title=title,
        file=await _read_pdf(file),
        visibility=None if is_public is None else Visibility.from_flag(is_public),
    )
    return TaskRead.model_validate(_found(task, task_id))


@router.patch(
    "/{task_id}/completed",
    response_model=TaskRead,
    summary="Mark a task completed or not",
)
async def set_completed(
    task_id: uuid.UUID,
    body: TaskCompletedUpdate,
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
) -> TaskRead:
    task = await sync.set_completed(
        db, session=session, task_id=task_id, completed=body.completed
    )
    return TaskRead.model_validate(_found(task, task_id))


@router.put(
    "/{task_id}/visibility",
    response_model=TaskRead,
    summary="Move the task's PDF between the public and private buckets",
)
async def change_visibility(
    task_id: uuid.UUID,
    body: VisibilityUpdate,
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
) -> TaskRead:
    task = await sync.change_visibility(
        db,
        session=session,
        task_id=task_id,
        visibility=Visibility.from_flag(body.is_public),
    )
    return TaskRead.model_validate(_found(task, task_id))


@router.get(
    "/{task_id}/pdf-link",
    response_model=AttachmentLink,
    summary="Get a URL for the task's PDF",
)
async def get_pdf_link(
    task_id: uuid.UUID,
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
) -> AttachmentLink:
    """
    Public PDFs return their permanent URL. Private PDFs get a freshly
    signed URL; url is null when signing is temporarily unavailable.
    """
    task = _found(await sync.get_task(db, session=session, task_id=task_id), task_id)
    attachment = task.attachment
    if attachment is None:
        raise NotFoundException("PDF attachment for task", str(task_id))
    url = await sync.get_pdf_link(db, session=session, task_id=task_id)
    expires_in = None if attachment.is_public or url is None else settings.SIGNED_URL_EXPIRES_SECONDS
    return AttachmentLink(url=url, expires_in=expires_in)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a task and its PDF",
)
async def delete_task(
    task_id: uuid.UUID,
    session: CurrentSession,
    db: DBSession,
    sync: RecordSync,
) -> None:
    await sync.delete_task(db, session=session, task_id=task_id)
