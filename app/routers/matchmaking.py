"""
Matchmaking router — skill suggestions.

Endpoints:
  GET  /matchmaking/for-skill/{skill_id}  — Other users' skills ranked by tag overlap
  POST /matchmaking/search                — Skills whose title matches a query
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.matchmaking import (
    MatchesResponse,
    ScoredSkillResponse,
    SearchRequest,
    SearchResponse,
)
from app.schemas.skill import SkillResponse
from app.services import matchmaking_service
from app.services.matchmaking_service import ScoredSkill

router = APIRouter()


def _to_response(match: ScoredSkill) -> ScoredSkillResponse:
    skill = SkillResponse.model_validate(match.skill).model_dump(exclude={"price"})
    return ScoredSkillResponse(**skill, score=match.score)


@router.get(
    "/for-skill/{skill_id}",
    response_model=MatchesResponse,
    summary="Find skills related to one you teach",
)
async def for_skill(
    skill_id: uuid.UUID,
    limit: int = Query(settings.MATCHMAKING_DEFAULT_LIMIT, ge=1, le=100),
    min_score: float = Query(0.0, ge=0.0, le=1.0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Rank skills owned by other users by how many tags they share with
    the given skill (cosine similarity, 0 to 1).
    """
    matches = await matchmaking_service.find_complementary_skills(
        db, skill_id, limit=limit, min_score=min_score
    )
    return MatchesResponse(matches=[_to_response(match) for match in matches])


@router.post("/search", response_model=SearchResponse, summary="Search skills by title")
async def search(
    request: SearchRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Title substring search (case-insensitive). Results with more tags, and
    those whose description also mentions the query, rank higher.
    """
    results = await matchmaking_service.search_skills_by_query(
        db, request.query, limit=request.candidates_limit
    )
    return SearchResponse(results=[_to_response(match) for match in results])
