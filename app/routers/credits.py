"""
Credits router — the caller's wallet.

Endpoints:
  GET  /credits/balance       — Current balance (creates an empty wallet on first call)
  GET  /credits/transactions  — History, newest first (?limit=, default 50, max 200)
  POST /credits/purchase      — Add purchased credits (after payment succeeded)
  POST /credits/spend         — Deduct credits (400 if the balance is too low)

All amounts accept at most two decimal places and are handled as integer
cents internally.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user
from app.exceptions import InsufficientCreditsError
from app.models.user import User
from app.money import to_cents
from app.schemas.credit import (
    BalanceResponse,
    CreditMovementResponse,
    PurchaseRequest,
    SpendRequest,
    TransactionListResponse,
    TransactionResponse,
)
from app.services import account_store, ledger, transaction_log

router = APIRouter()


@router.get("/balance", response_model=BalanceResponse, summary="Get your credit balance")
async def get_balance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    balance_cents = await account_store.get_balance(db, user.id)
    return BalanceResponse(balance_cents=balance_cents)


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List your credit transactions",
)
async def list_transactions(
    limit: int = Query(settings.TRANSACTIONS_DEFAULT_LIMIT, ge=1, le=settings.TRANSACTIONS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    kind: str | None = Query(None, description="Filter by kind: purchase, spend, earn, refund"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    transactions = await transaction_log.list_for_user(
        db, user.id, limit=limit, offset=offset, kind=kind
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(txn) for txn in transactions]
    )


@router.post("/purchase", response_model=CreditMovementResponse, summary="Add purchased credits")
async def purchase_credits(
    request: PurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit the caller's wallet. Intended to be called once an external
    payment has succeeded; no payment is taken here.
    """
    txn, balance_cents = await ledger.purchase(
        db, user.id, to_cents(request.amount), meta=request.meta
    )
    return CreditMovementResponse(
        balance_cents=balance_cents,
        transaction=TransactionResponse.model_validate(txn),
    )


@router.post("/spend", response_model=CreditMovementResponse, summary="Spend credits")
async def spend_credits(
    request: SpendRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    amount_cents = to_cents(request.amount)
    result = await ledger.spend(
        db, user.id, amount_cents, reason=request.reason, meta=request.meta
    )

    if not result.ok:
        raise InsufficientCreditsError(
            user_id=user.id,
            requested_cents=amount_cents,
            available_cents=result.balance_cents,
        )

    return CreditMovementResponse(
        balance_cents=result.balance_cents,
        transaction=TransactionResponse.model_validate(result.transactions[0]),
    )
