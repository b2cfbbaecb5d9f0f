"""
Request dependencies.

get_current_user resolves "Authorization: Bearer <token>" to an active
User, or rejects the request with 401 before the handler runs. Handlers
pass user.id down; services never see tokens.

Ownership (who may touch which skill, connection or wallet) is not decided
here. It belongs to the services, which raise ForbiddenError.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User
from app.security import token_subject


# tokenUrl is what Swagger UI's "Authorize" dialog posts to
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Raises:
        HTTPException 401: Bad or expired token, unknown or deactivated user.
    """
    try:
        user_id = token_subject(token)
    except JWTError:
        raise _unauthorized()

    user = await db.get(User, user_id)

    if user is None or not user.is_active:
        raise _unauthorized()

    return user
