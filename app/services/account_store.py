"""
Account store — point lookups and single-statement updates on wallets.

This is the only module that writes `wallets.balance_cents`, and it is only
called by the ledger. Each mutating function is one UPDATE statement, so
every step of a transfer is individually atomic:

  - debit_if_sufficient(): "decrement if balance >= amount" in the WHERE
    clause, so the sufficiency check and the write cannot be separated by
    another writer
  - credit(): unconditional increment
  - adjust(): signed increment used only to compensate a step that already
    committed

Balances are read back with column selects rather than through ORM
instances, so values cached in the session's identity map never hide a
write made by one of the UPDATE statements above.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.wallet import Wallet


async def get_or_create(db: AsyncSession, user_id: uuid.UUID) -> Wallet:
    """
    Return the user's wallet, creating an empty one on first use.

    Wallet creation is explicit here instead of a side effect of a balance
    query failing with "no rows".
    """
    result = await db.execute(select(Wallet).where(Wallet.user_id == user_id))
    wallet = result.scalar_one_or_none()

    if wallet is None:
        wallet = Wallet(user_id=user_id, balance_cents=0)
        db.add(wallet)
        await db.flush()

    return wallet


async def get_balance(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Current balance in cents (get-or-create)."""
    await get_or_create(db, user_id)
    result = await db.execute(
        select(Wallet.balance_cents).where(Wallet.user_id == user_id)
    )
    return result.scalar_one()


async def debit_if_sufficient(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount_cents: int,
) -> bool:
    """
    Subtract amount_cents only if the balance covers it.

    Returns:
        True if the wallet was debited, False if the balance was too low
        (no row matched, nothing changed).
    """
    result = await db.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id)
        .where(Wallet.balance_cents >= amount_cents)
        .values(
            balance_cents=Wallet.balance_cents - amount_cents,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def credit(db: AsyncSession, user_id: uuid.UUID, amount_cents: int) -> None:
    """Add amount_cents to the user's wallet, creating the wallet if needed."""
    await get_or_create(db, user_id)
    await db.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id)
        .values(
            balance_cents=Wallet.balance_cents + amount_cents,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )


async def adjust(db: AsyncSession, user_id: uuid.UUID, delta_cents: int) -> None:
    """
    Apply a signed correction to a wallet.

    Compensation only: undoes a debit (+amount) or a credit (-amount) that
    already went through when a later step of the same transfer failed.
    No transaction record is written for an adjustment.
    """
    await db.execute(
        update(Wallet)
        .where(Wallet.user_id == user_id)
        .values(
            balance_cents=Wallet.balance_cents + delta_cents,
            updated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
