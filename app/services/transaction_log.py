"""
Transaction log — append-only audit trail of credit movements.

Records are built with entry() and written with append(); there is no
update or delete function on purpose. Reads are scoped to one user and
ordered newest first.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import CreditTransaction, TransactionKind


def entry(
    user_id: uuid.UUID,
    kind: TransactionKind,
    amount_cents: int,
    transfer_id: uuid.UUID | None = None,
    meta: dict | None = None,
) -> CreditTransaction:
    """
    Build (but do not persist) a transaction record.

    Raises:
        ValueError: If amount_cents is not positive.
    """
    if amount_cents <= 0:
        raise ValueError("Transaction amount must be positive")

    return CreditTransaction(
        user_id=user_id,
        kind=kind.value,
        amount_cents=amount_cents,
        transfer_id=transfer_id,
        meta=meta,
    )


async def append(db: AsyncSession, *entries: CreditTransaction) -> list[CreditTransaction]:
    """Persist one or more records in a single flush."""
    db.add_all(entries)
    await db.flush()
    return list(entries)


async def list_for_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    limit: int = 50,
    offset: int = 0,
    kind: str | None = None,
) -> list[CreditTransaction]:
    """
    List a user's transactions, newest first.

    Args:
        db: Database session.
        user_id: Whose history to read.
        limit: Max number of results.
        offset: Number of results to skip (for pagination).
        kind: Optional filter ("purchase", "spend", "earn", "refund").
    """
    query = (
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    if kind:
        query = query.where(CreditTransaction.kind == kind)

    result = await db.execute(query)
    return list(result.scalars().all())


async def list_for_transfer(
    db: AsyncSession,
    transfer_id: uuid.UUID,
) -> list[CreditTransaction]:
    """Both legs of a transfer (empty if the transfer never completed)."""
    result = await db.execute(
        select(CreditTransaction)
        .where(CreditTransaction.transfer_id == transfer_id)
        .order_by(CreditTransaction.created_at)
    )
    return list(result.scalars().all())
