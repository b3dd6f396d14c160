"""
Task ORM model.
A task owns at most one PDF attachment, stored inline as pdf_* columns.
The row is the source of truth for where the attachment object lives.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from mytasks.db.base import Base
from mytasks.schemas.attachment import Attachment, Visibility


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    # Issued by the auth provider; there is no local users table.
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # ── Attachment ────────────────────────────────────────────────────────────
    pdf_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    pdf_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    pdf_bucket: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_public_pdf: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_tasks_user_id_created_at", "user_id", "created_at"),
        Index("ix_tasks_is_public_pdf", "is_public_pdf"),
    )

    @property
    def attachment(self) -> Attachment | None:
        """The attachment descriptor held by this row, or None."""
        if not self.pdf_path or not self.pdf_bucket:
            return None
        return Attachment(
            path=self.pdf_path,
            bucket=self.pdf_bucket,
            visibility=Visibility.PUBLIC if self.is_public_pdf else Visibility.PRIVATE,
            url=self.pdf_url,
        )

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} pdf_path={self.pdf_path!r}>"
