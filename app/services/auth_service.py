"""
Registration and login.

A registered user gets an empty wallet straight away, so the first balance
read is never a special case for the client. Both operations return the
user together with a fresh access token.

Login reports one InvalidCredentialsError for an unknown email, a wrong
password and a deactivated account alike.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateEmailError, InvalidCredentialsError
from app.models.user import User
from app.security import create_access_token, hash_password, verify_password
from app.services import account_store

logger = logging.getLogger(__name__)


async def _find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def register(
    db: AsyncSession,
    email: str,
    password: str,
    full_name: str,
) -> tuple[User, str]:
    """
    Create a user and their wallet.

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    if await _find_by_email(db, email) is not None:
        raise DuplicateEmailError(email)

    user = User(email=email, hashed_password=hash_password(password), full_name=full_name)
    db.add(user)
    await db.flush()  # assigns user.id for the wallet row

    await account_store.get_or_create(db, user.id)

    logger.info(f"Registered user {user.id}")
    return user, create_access_token(user.id)


async def login(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """
    Raises:
        InvalidCredentialsError: Unknown email, wrong password or inactive user.
    """
    user = await _find_by_email(db, email)

    if user is None or not verify_password(password, user.hashed_password) or not user.is_active:
        raise InvalidCredentialsError()

    return user, create_access_token(user.id)
