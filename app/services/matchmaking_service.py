"""
Matchmaking service — ranks skills by tag similarity or text relevance.

Read-only: nothing here mutates the database.

Tag overlap score:
    score(A, B) = |A ∩ B| / sqrt(|A| * |B|)

  computed over lower-cased tag sets. It is the cosine similarity of two
  binary tag-presence vectors: symmetric, 0 when either side has no tags,
  and 1 when both sides have the same tags.
"""

import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import SkillNotFoundError
from app.models.skill import Skill


@dataclass
class ScoredSkill:
    skill: Skill
    score: float


def _normalize(tags: Iterable[str] | None) -> set[str]:
    return {tag.strip().lower() for tag in (tags or []) if tag and tag.strip()}


def tag_overlap_score(tags_a: Iterable[str] | None, tags_b: Iterable[str] | None) -> float:
    """Cosine similarity of two tag sets, case-insensitive, in [0, 1]."""
    set_a = _normalize(tags_a)
    set_b = _normalize(tags_b)

    if not set_a or not set_b:
        return 0.0

    common = len(set_a & set_b)
    return common / math.sqrt(len(set_a) * len(set_b))


async def find_complementary_skills(
    db: AsyncSession,
    skill_id: uuid.UUID,
    limit: int = 20,
    min_score: float = 0.0,
) -> list[ScoredSkill]:
    """
    Rank other users' skills by tag overlap with a reference skill.

    Only the first MATCHMAKING_CANDIDATE_POOL candidates (oldest first) are
    scored, which bounds the cost of one request.

    Raises:
        SkillNotFoundError: If the reference skill doesn't exist.
    """
    result = await db.execute(select(Skill).where(Skill.id == skill_id))
    reference = result.scalar_one_or_none()

    if reference is None:
        raise SkillNotFoundError(skill_id)

    candidates = await db.execute(
        select(Skill)
        .where(Skill.owner_id != reference.owner_id)
        .order_by(Skill.created_at)
        .limit(settings.MATCHMAKING_CANDIDATE_POOL)
    )

    scored = [
        ScoredSkill(skill=candidate, score=tag_overlap_score(reference.tags, candidate.tags))
        for candidate in candidates.scalars().all()
    ]
    scored = [match for match in scored if match.score >= min_score]

    # sorted() is stable: equal scores keep candidate order
    scored = sorted(scored, key=lambda match: match.score, reverse=True)
    return scored[:limit]


async def search_skills_by_query(
    db: AsyncSession,
    query: str,
    limit: int = 30,
) -> list[ScoredSkill]:
    """
    Find skills whose title contains the query, ranked by richness.

    score = number of tags, +2 when the description also mentions the query.
    """
    needle = query.lower()

    candidates = await db.execute(
        select(Skill)
        .where(func.lower(Skill.title).contains(needle, autoescape=True))
        .order_by(Skill.created_at)
        .limit(limit)
    )

    scored = []
    for candidate in candidates.scalars().all():
        score = len(candidate.tags or [])
        if needle in (candidate.description or "").lower():
            score += 2
        scored.append(ScoredSkill(skill=candidate, score=float(score)))

    scored = sorted(scored, key=lambda match: match.score, reverse=True)
    return scored[:limit]
