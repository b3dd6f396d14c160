"""
FastAPI dependency injection functions.
Provides get_db, get_current_session, get_storage and get_record_sync.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from mytasks.core.exceptions import InvalidTokenException, UnauthorizedException
from mytasks.core.security import UserSession, session_from_token
from mytasks.db.session import get_db
from mytasks.services.record_sync_service import AttachmentRecordSync
from mytasks.services.storage_service import ObjectStore

# Re-export get_db so routes can import from one place
__all__ = [
    "get_db",
    "get_current_session",
    "get_storage",
    "get_record_sync",
    "DBSession",
    "CurrentSession",
    "RecordSync",
]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> UserSession:
    """Build the caller's UserSession from the bearer access token."""
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")
    try:
        return session_from_token(credentials.credentials)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")


def get_storage(request: Request) -> ObjectStore:
    """The object store client opened in the application lifespan."""
    return request.app.state.storage


def get_record_sync(
    storage: Annotated[ObjectStore, Depends(get_storage)],
) -> AttachmentRecordSync:
    return AttachmentRecordSync(storage)


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentSession = Annotated[UserSession, Depends(get_current_session)]
RecordSync = Annotated[AttachmentRecordSync, Depends(get_record_sync)]
