"""
Attachment Pydantic schemas.
The Attachment descriptor rejects a public object without a URL and a private
object with one, so an inconsistent descriptor can never reach the database.
"""
from __future__ import annotations

import enum
import posixpath

from pydantic import BaseModel, ConfigDict, model_validator


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def from_flag(cls, is_public: bool) -> "Visibility":
        return cls.PUBLIC if is_public else cls.PRIVATE


class Attachment(BaseModel):
    """Where a task's PDF lives and how it is reached."""

    path: str
    bucket: str
    visibility: Visibility
    url: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_url_matches_visibility(self) -> "Attachment":
        if self.visibility is Visibility.PUBLIC and not self.url:
            raise ValueError("a public attachment must carry its public URL")
        if self.visibility is Visibility.PRIVATE and self.url is not None:
            raise ValueError("a private attachment must not carry a URL")
        return self

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    @property
    def filename(self) -> str:
        return posixpath.basename(self.path)


class AttachmentLink(BaseModel):
    """Response body of the PDF link endpoint. url is None when temporarily unavailable."""

    url: str | None
    expires_in: int | None = None


class VisibilityUpdate(BaseModel):
    is_public: bool
