"""
Security utilities: access token verification and the per-request user session.
Tokens are HS256 JWTs issued by the auth provider and verified with python-jose.
"""
from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from mytasks.core.config import settings


@dataclass(frozen=True)
class UserSession:
    """
    Identity of the caller for one logical session.
    Built from the access token and passed explicitly to every service call.
    """

    user_id: uuid.UUID


# ── JWT helpers ───────────────────────────────────────────────────────────────

def create_access_token(
    user_id: str,
    expire_delta: timedelta = timedelta(hours=1),
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Mint an access token in the same shape the auth provider issues."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + expire_delta,
        "jti": secrets.token_hex(16),
    }
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.
    Raises JWTError on failure.
    """
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
    )


def session_from_token(token: str) -> UserSession:
    """Return the UserSession carried by a token. Raises JWTError if unusable."""
    payload = decode_access_token(token)
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Malformed token: missing subject")
    try:
        return UserSession(user_id=uuid.UUID(subject))
    except ValueError as exc:
        raise JWTError("Malformed token: invalid subject format") from exc
