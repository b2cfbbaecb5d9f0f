"""
Pydantic schemas for matchmaking endpoints.

The search body keeps the camelCase `candidatesLimit` key existing
clients send; snake_case is accepted too.
"""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.skill import SkillResponse


class ScoredSkillResponse(SkillResponse):
    """A skill plus its ranking score."""
    score: float


class MatchesResponse(BaseModel):
    """Response body for GET /matchmaking/for-skill/{skill_id}."""
    matches: list[ScoredSkillResponse]


class SearchRequest(BaseModel):
    """Request body for POST /matchmaking/search."""
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field("", max_length=200)
    candidates_limit: int = Field(30, ge=1, le=500, alias="candidatesLimit")


class SearchResponse(BaseModel):
    """Response body for POST /matchmaking/search."""
    results: list[ScoredSkillResponse]
