"""
Task Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class TaskCompletedUpdate(BaseModel):
    completed: bool


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    completed: bool
    user_id: uuid.UUID
    pdf_path: str | None
    pdf_url: str | None
    pdf_bucket: str | None
    is_public_pdf: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PublicTaskRead(BaseModel):
    """Read-only projection served to anonymous visitors."""

    id: uuid.UUID
    title: str
    pdf_url: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
