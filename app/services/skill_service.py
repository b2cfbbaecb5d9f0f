"""
Skill service — listing CRUD.

Skills are public to read and writable only by their owner. A price edit
never touches existing connections: they carry their own price snapshot.
Deleting a skill deletes the connections made against it.
"""

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ForbiddenError, SkillNotFoundError
from app.models.connection import Connection
from app.models.skill import Skill


async def list_skills(
    db: AsyncSession,
    q: str | None = None,
    limit: int = 50,
) -> list[Skill]:
    """Newest first, optionally filtered by a case-insensitive title substring."""
    query = select(Skill).order_by(Skill.created_at.desc()).limit(limit)

    if q:
        query = query.where(func.lower(Skill.title).contains(q.lower(), autoescape=True))

    result = await db.execute(query)
    return list(result.scalars().all())


async def create_skill(
    db: AsyncSession,
    owner_id: uuid.UUID,
    title: str,
    price_cents: int,
    description: str | None = None,
    tags: list[str] | None = None,
) -> Skill:
    skill = Skill(
        owner_id=owner_id,
        title=title,
        description=description,
        price_cents=price_cents,
        tags=list(tags or []),
    )
    db.add(skill)
    await db.flush()
    return skill


async def get_skill(db: AsyncSession, skill_id: uuid.UUID) -> Skill:
    """
    Raises:
        SkillNotFoundError: If the skill doesn't exist.
    """
    result = await db.execute(select(Skill).where(Skill.id == skill_id))
    skill = result.scalar_one_or_none()

    if skill is None:
        raise SkillNotFoundError(skill_id)

    return skill


async def get_owned_skill(db: AsyncSession, skill_id: uuid.UUID, owner_id: uuid.UUID) -> Skill:
    """
    Raises:
        SkillNotFoundError: If the skill doesn't exist.
        ForbiddenError: If the skill belongs to someone else.
    """
    skill = await get_skill(db, skill_id)

    if skill.owner_id != owner_id:
        raise ForbiddenError("Not authorized to modify this skill")

    return skill


async def update_skill(
    db: AsyncSession,
    skill_id: uuid.UUID,
    owner_id: uuid.UUID,
    updates: dict,
) -> Skill:
    """Apply a partial update (title, description, price_cents, tags)."""
    skill = await get_owned_skill(db, skill_id, owner_id)

    for field, value in updates.items():
        setattr(skill, field, value)

    await db.flush()
    return skill


async def delete_skill(db: AsyncSession, skill_id: uuid.UUID, owner_id: uuid.UUID) -> None:
    """Delete a skill and the connections made against it."""
    skill = await get_owned_skill(db, skill_id, owner_id)

    await db.execute(
        delete(Connection)
        .where(Connection.skill_id == skill.id)
        .execution_options(synchronize_session=False)
    )
    await db.delete(skill)
    await db.flush()
