"""
Pydantic schemas for Connection endpoints.

price_cents on a connection is the snapshot taken from the skill when the
request was made.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, computed_field

from app.money import from_cents
from app.schemas.credit import TransactionResponse


class ConnectionCreateRequest(BaseModel):
    """Request body for POST /connections."""
    skill_id: uuid.UUID
    message: str | None = Field(None, max_length=1000)


class ConnectionUpdateRequest(BaseModel):
    """Request body for PUT /connections/{id}."""
    status: Literal["pending", "accepted", "rejected", "completed"]


class ConnectionResponse(BaseModel):
    """Public representation of a connection."""
    id: uuid.UUID
    skill_id: uuid.UUID
    learner_id: uuid.UUID
    teacher_id: uuid.UUID
    price_cents: int
    status: str
    message: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def price(self) -> Decimal:
        return from_cents(self.price_cents)


class TransferOutcome(BaseModel):
    """
    What an acceptance did to the teacher's wallet.

    Only the caller's (teacher's) side is returned; the learner's balance
    is theirs to see via GET /credits/balance.
    """
    transfer_id: uuid.UUID
    status: str
    amount_cents: int
    teacher_balance_cents: int
    earn_transaction: TransactionResponse | None

    @computed_field
    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @computed_field
    @property
    def teacher_balance(self) -> Decimal:
        return from_cents(self.teacher_balance_cents)


class ConnectionUpdateResponse(BaseModel):
    """Response body for PUT /connections/{id}."""
    connection: ConnectionResponse
    transfer: TransferOutcome | None = None


class CancelResponse(BaseModel):
    """Response body for DELETE /connections/{id}."""
    ok: bool = True
    message: str = "Connection cancelled"
