"""
Anonymous read-only listing of tasks whose PDF is public.
"""
from __future__ import annotations

from fastapi import APIRouter

from mytasks.core.dependencies import DBSession, RecordSync
from mytasks.schemas.task import PublicTaskRead

router = APIRouter(prefix="/public", tags=["Public"])


@router.get(
    "/tasks",
    response_model=list[PublicTaskRead],
    summary="List tasks with a public PDF",
)
async def list_public_tasks(db: DBSession, sync: RecordSync) -> list[PublicTaskRead]:
    tasks = await sync.list_public_tasks(db)
    return [PublicTaskRead.model_validate(t) for t in tasks]
