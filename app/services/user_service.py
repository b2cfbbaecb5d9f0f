"""
User service — public profiles and account deletion.

Deleting a user removes everything that references them: connections on
either side, their skills (and connections to those skills), their
transaction history and their wallet. Deletes are issued explicitly,
children first, so the result doesn't depend on the database enforcing
ON DELETE CASCADE (SQLite only does with PRAGMA foreign_keys=ON).
"""

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import UserNotFoundError
from app.models.connection import Connection
from app.models.skill import Skill
from app.models.transaction import CreditTransaction
from app.models.user import User
from app.models.wallet import Wallet

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """
    Raises:
        UserNotFoundError: If no such user exists.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise UserNotFoundError(user_id)

    return user


async def update_profile(db: AsyncSession, user: User, updates: dict) -> User:
    """Apply a partial profile update (only the keys present in `updates`)."""
    for field, value in updates.items():
        setattr(user, field, value)

    await db.flush()
    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Delete a user and every row that references them."""
    owned_skills = select(Skill.id).where(Skill.owner_id == user_id)

    await db.execute(
        delete(Connection)
        .where(
            (Connection.learner_id == user_id)
            | (Connection.teacher_id == user_id)
            | (Connection.skill_id.in_(owned_skills))
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Skill).where(Skill.owner_id == user_id).execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Wallet).where(Wallet.user_id == user_id).execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
    )
    db.expunge_all()

    logger.info(f"User {user_id} deleted with skills, connections, wallet and history")
