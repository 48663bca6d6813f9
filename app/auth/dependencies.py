from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import Actor
from app.auth.security import decode_access_token
from app.db.session import get_db


# Tokens are issued by the external identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


async def get_current_actor(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """Resolve the caller from the bearer token and attach their role (None if unassigned)."""
    from app.auth.services import get_user_role

    try:
        user_id = decode_access_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = await get_user_role(db, user_id)
    return Actor(id=user_id, role=role)
