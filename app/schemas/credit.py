"""
Pydantic schemas for credit endpoints (balance, history, purchase, spend).

Amounts are accepted as decimal credits (two fractional digits at most) and
returned both as decimals and as integer cents.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, computed_field

from app.money import from_cents


class BalanceResponse(BaseModel):
    """Response body for GET /credits/balance."""
    balance_cents: int

    @computed_field
    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)


class TransactionResponse(BaseModel):
    """Public representation of one credit movement."""
    id: uuid.UUID
    kind: str
    amount_cents: int
    transfer_id: uuid.UUID | None
    meta: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


class TransactionListResponse(BaseModel):
    """Response body for GET /credits/transactions."""
    transactions: list[TransactionResponse]


class PurchaseRequest(BaseModel):
    """Request body for POST /credits/purchase."""
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    meta: dict[str, Any] | None = None


class SpendRequest(BaseModel):
    """Request body for POST /credits/spend."""
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str | None = Field(None, max_length=255)
    meta: dict[str, Any] | None = None


class CreditMovementResponse(BaseModel):
    """Response body for a successful purchase or spend."""
    ok: bool = True
    balance_cents: int
    transaction: TransactionResponse

    @computed_field
    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)
