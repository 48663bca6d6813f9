"""Access tokens. Issued by the identity provider in production; here for tooling and tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(user_id: UUID, *, expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": str(user_id), "user_id": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """User id carried by a valid token. Raises JWTError for anything unusable."""
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    raw = payload.get("user_id") or payload.get("sub")
    if not raw:
        raise JWTError("token has no subject")
    try:
        return UUID(str(raw))
    except ValueError as e:
        raise JWTError("subject is not a user id") from e
