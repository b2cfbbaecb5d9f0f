"""
Pydantic schemas for Skill endpoints.

Prices travel as decimal credits with at most two fractional digits
(e.g. 30.00) and are stored as integer cents. Responses carry both forms.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from app.money import from_cents


class SkillCreateRequest(BaseModel):
    """Request body for POST /skills."""
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(None, max_length=2000)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    tags: list[str] = Field(default_factory=list, max_length=30)


class SkillUpdateRequest(BaseModel):
    """Request body for PUT /skills/{id} — only the fields sent are changed."""
    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=2000)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    tags: list[str] | None = Field(None, max_length=30)


class SkillResponse(BaseModel):
    """Public representation of a skill."""
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str | None
    price_cents: int
    tags: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def price(self) -> Decimal:
        return from_cents(self.price_cents)
