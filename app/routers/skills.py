"""
Skills router — listing CRUD.

Endpoints:
  GET    /skills        — List skills, newest first (public, ?q= title filter)
  POST   /skills        — Create a skill owned by the caller
  GET    /skills/{id}   — Get one skill (public)
  PUT    /skills/{id}   — Update a skill (owner only)
  DELETE /skills/{id}   — Delete a skill and its connections (owner only)
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.money import to_cents
from app.schemas.skill import SkillCreateRequest, SkillResponse, SkillUpdateRequest
from app.services import skill_service

router = APIRouter()


@router.get("", response_model=list[SkillResponse], summary="List skills")
async def list_skills(
    q: str | None = Query(None, max_length=200, description="Case-insensitive title filter"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    return await skill_service.list_skills(db, q=q, limit=limit)


@router.post(
    "",
    response_model=SkillResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a skill",
)
async def create_skill(
    request: SkillCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List a new skill. The caller becomes its owner.

    - **price**: Credits per session, 0 or more, at most two decimal places
    - **tags**: Free-form labels used by matchmaking (case-insensitive)
    """
    return await skill_service.create_skill(
        db,
        owner_id=user.id,
        title=request.title,
        description=request.description,
        price_cents=to_cents(request.price),
        tags=request.tags,
    )


@router.get("/{skill_id}", response_model=SkillResponse, summary="Get a skill")
async def get_skill(
    skill_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await skill_service.get_skill(db, skill_id)


@router.put("/{skill_id}", response_model=SkillResponse, summary="Update a skill")
async def update_skill(
    skill_id: uuid.UUID,
    request: SkillUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a skill you own. Only fields sent are changed.

    Changing the price does not affect connections already requested.
    """
    # description is the only field that may be cleared with null
    updates = {
        field: value
        for field, value in request.model_dump(exclude_unset=True).items()
        if value is not None or field == "description"
    }
    if "price" in updates:
        updates["price_cents"] = to_cents(updates.pop("price"))

    return await skill_service.update_skill(db, skill_id, user.id, updates)


@router.delete("/{skill_id}", summary="Delete a skill")
async def delete_skill(
    skill_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await skill_service.delete_skill(db, skill_id, user.id)
    return {"ok": True, "message": "Skill deleted successfully"}
